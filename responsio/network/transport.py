"""HTTP Transport。

即发即弃的请求抽象：调用方提供成功/失败回调，结果统一归一化为
Success(payload) 或 Failure(status, message)。

- 响应分类：200/204 走成功路径，其余状态码走失败路径。
- 只理解 JSON：成功响应体无法解码本身就是失败（500, "Internal Error"）；
  失败响应尝试解码并提取 error 字段，否则使用 "Internal Server Error"。
- 网络错误/超时固定为 500 + 描述信息，绝不走成功路径。
- 所有请求都携带会话 cookie（固定策略，不可按调用配置）。

回调形式（get/post/request）在后台线程中执行 send()，调用方立即返回；
完成的结果放入队列，由宿主事件线程通过 process_events()/wait() 按到达顺序
执行回调，因此回调之间不会并发。
"""

import json
import queue
import threading
import time
from typing import Any, Callable, Mapping, Optional
from urllib.parse import urlsplit

import httpx

from responsio.config.settings import settings
from responsio.domain.exceptions import ValidationError
from responsio.domain.models import ConfigTree, Failure, Result, Success
from responsio.infrastructure.logging.logger import logger


SUCCESS_STATUSES = (200, 204)
JSON_TYPE = "application/json"
DEFAULT_POST_TYPE = "application/json;charset=UTF-8"
INTERNAL_STATUS = 500
POLL_INTERVAL = 0.05

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[int, str], None]


class Transport:
    """基于 httpx 的 Transport 实现。"""

    name = "http"

    def __init__(
        self,
        cfg: ConfigTree,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._cfg = cfg
        self._timeout = timeout or settings.http_timeout
        self._transport = transport
        self._cookies = httpx.Cookies()
        self._cookie_lock = threading.Lock()
        self._ready: queue.Queue = queue.Queue()
        self._pending = 0

    @property
    def cookies(self) -> httpx.Cookies:
        return self._cookies

    def resolve(self, endpoint: str) -> str:
        """绝对 URL 原样使用，否则相对于配置的 service 地址解析。"""

        if urlsplit(endpoint).scheme in ("http", "https"):
            return endpoint
        return f"{self._cfg.url.service}{endpoint}"

    # ---- 回调形式 ----

    def get(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        options: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.request("GET", endpoint, params, on_success, on_failure, options)

    def post(
        self,
        endpoint: str,
        data: Any = None,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        options: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.request("POST", endpoint, data, on_success, on_failure, options)

    def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
        options: Optional[Mapping[str, str]] = None,
    ) -> None:
        """在后台线程中发送请求，立即返回；回调由 process_events 在事件线程中执行。"""

        def worker():
            try:
                result = self.send(method, endpoint, data, options)
            except Exception as e:
                logger.exception("Request could not be sent", extra={"extra": {"endpoint": endpoint}})
                result = Failure(status=INTERNAL_STATUS, message=getattr(e, "message", "Internal Error"))
            self._ready.put((endpoint, result, on_success, on_failure))

        self._pending += 1
        threading.Thread(target=worker, daemon=True).start()

    # ---- 事件线程 ----

    @property
    def pending(self) -> int:
        """已发出但回调尚未执行的请求数。"""

        return self._pending

    def process_events(self, timeout: float = 0.0) -> int:
        """按到达顺序执行已完成请求的回调，返回执行的数量。

        timeout > 0 时最多等待该秒数以取得第一个完成的请求。
        """
        handled = 0
        block = timeout > 0
        while True:
            try:
                item = self._ready.get(timeout=timeout) if block else self._ready.get_nowait()
            except queue.Empty:
                return handled
            block = False
            self._pending -= 1
            self._deliver(*item)
            handled += 1

    def wait(self, timeout: Optional[float] = None) -> bool:
        """处理事件直到没有未完成的请求；超时返回 False。"""

        deadline = None if timeout is None else time.monotonic() + timeout
        while self._pending:
            remaining = POLL_INTERVAL if deadline is None else deadline - time.monotonic()
            if remaining <= 0:
                return False
            self.process_events(timeout=min(remaining, POLL_INTERVAL))
        return True

    def _deliver(
        self,
        endpoint: str,
        result: Result,
        on_success: Optional[SuccessCallback],
        on_failure: Optional[FailureCallback],
    ) -> None:
        try:
            if isinstance(result, Success):
                if on_success:
                    on_success(result.payload)
            elif on_failure:
                on_failure(result.status, result.message)
        except Exception:
            logger.exception("Transport callback failed", extra={"extra": {"endpoint": endpoint}})

    # ---- 结果形式 ----

    def send(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        options: Optional[Mapping[str, str]] = None,
    ) -> Result:
        method = method.upper()
        options = options or {}
        url = self.resolve(endpoint)
        headers = {"Accept": options.get("accept", JSON_TYPE)}
        kwargs: dict = {}
        if method == "GET":
            if data:
                kwargs["params"] = {k: str(v) for k, v in data.items()}
        else:
            headers["Content-Type"] = options.get("type", DEFAULT_POST_TYPE)
            if "encoding" in options:
                headers["Content-Transfer-Encoding"] = options["encoding"]
            try:
                kwargs["content"] = json.dumps(data, ensure_ascii=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise ValidationError(code="INVALID_PAYLOAD", message=str(e))

        with self._cookie_lock:
            cookies = httpx.Cookies(self._cookies)
        try:
            with httpx.Client(
                timeout=self._timeout,
                cookies=cookies,
                transport=self._transport,
                trust_env=False,
            ) as client:
                resp = client.request(method, url, headers=headers, **kwargs)
                with self._cookie_lock:
                    self._cookies.update(client.cookies)
        except httpx.TimeoutException as e:
            logger.error("Request timed out", extra={"extra": {"url": url, "error": str(e)}})
            return Failure(status=INTERNAL_STATUS, message="Request Timeout")
        except httpx.RequestError as e:
            logger.error("Request failed", extra={"extra": {"url": url, "error": str(e)}})
            return Failure(status=INTERNAL_STATUS, message="Internal Error")
        return self._classify(resp)

    def _classify(self, resp: httpx.Response) -> Result:
        status = resp.status_code
        ok = status in SUCCESS_STATUSES
        body = resp.text
        content_type = (resp.headers.get("Content-Type") or JSON_TYPE).split(";")[0].strip().lower()

        if content_type != JSON_TYPE:
            logger.error("Unsupported content type", extra={"extra": {"content_type": content_type}})
            if ok:
                return Success(body)
            return Failure(status=status, message=body or "Internal Server Error")

        if ok:
            if status == 204 or not body.strip():
                return Success(None)
            try:
                return Success(json.loads(body))
            except ValueError:
                logger.error("Failed parsing JSON response", extra={"extra": {"body": body}})
                return Failure(status=INTERNAL_STATUS, message="Internal Error")

        try:
            decoded = json.loads(body)
        except ValueError:
            decoded = None
        message = decoded.get("error") if isinstance(decoded, dict) else None
        if not isinstance(message, str) or not message:
            message = "Internal Server Error"
        logger.warning("Request rejected", extra={"extra": {"status": status, "error": message}})
        return Failure(status=status, message=message)
