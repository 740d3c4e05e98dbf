"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置，并根据嵌入脚本的
位置推导出服务地址（ConfigTree）。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from responsio.domain.exceptions import ConfigError
from responsio.domain.models import ConfigTree, UrlConfig


VERSION = "1.0.0"
SCRIPT_NAME = f"/javascript/responsio-{VERSION}.js"
SERVICE_SUFFIX = "responsio/"


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("RESPONSIO_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """客户端配置。"""

    # ---- 脚本位置与身份 ----
    script_src: str = Field(
        default=SCRIPT_NAME,
        description="嵌入脚本的 src 属性（可为相对地址）",
    )
    page_url: str = Field(
        default="http://localhost:8080/",
        description="嵌入脚本的页面地址，用于解析相对 src",
    )
    identity: Optional[str] = Field(default=None, description="会话/用户身份标识")

    # ---- 网络 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 存储 ----
    storage_root: str = Field(default=".storage", description="持久化存储目录")
    storage_key: str = Field(
        default="com.paradoxwebsolutions.chatbot",
        description="持久化文档的固定应用标识",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- 窗口默认值 ----
    style: str = Field(default="default", description="窗口样式表名称")
    selector: str = Field(default="body", description="窗口挂载点选择器")
    title: Optional[str] = Field(default=None, description="窗口标题")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("identity")
    @classmethod
    def validate_identity(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            v = v.strip()
        return v or None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


def discover_config(script_src: str, page_url: str, identity: Optional[str]) -> Optional[ConfigTree]:
    """根据脚本自身地址推导 ConfigTree。

    没有身份时返回 None（系统不激活）；脚本地址不以 SCRIPT_NAME 结尾时抛出 ConfigError。
    """

    if not identity:
        return None
    parts = urlsplit(urljoin(page_url, script_src))
    if not parts.path.endswith(SCRIPT_NAME):
        raise ConfigError(
            code="UNKNOWN_SCRIPT",
            message=f"Script location does not end with {SCRIPT_NAME}",
            script_src=script_src,
        )
    path = parts.path[: -len(SCRIPT_NAME)] + "/"
    root = urlunsplit((parts.scheme, parts.netloc, path, "", ""))
    return ConfigTree(url=UrlConfig(root=root, service=f"{root}{SERVICE_SUFFIX}"), identity=identity)


settings = Settings()
