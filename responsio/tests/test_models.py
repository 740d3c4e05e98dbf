import pytest

from responsio.domain.exceptions import BusinessError, ProtocolError
from responsio.domain.models import CommandDescriptor, ExecutionReport, Failure, Success


def test_command_descriptor_from_payload():
    cd = CommandDescriptor.from_payload({"command": "text", "data": "hi"})
    assert cd == CommandDescriptor(command="text", data="hi")
    assert CommandDescriptor.from_payload({"command": "reset"}).data is None


@pytest.mark.parametrize("entry", [None, "text", {"data": 1}, {"command": ""}, {"command": 3}])
def test_command_descriptor_rejects_bad_entries(entry):
    with pytest.raises(ProtocolError) as exc:
        CommandDescriptor.from_payload(entry)
    assert isinstance(exc.value, BusinessError)
    assert exc.value.code == "INVALID_COMMAND"


def test_results():
    assert Success({"a": 1}).ok
    f = Failure(status=500, message="Internal Error")
    assert not f.ok and f.status == 500
    assert ExecutionReport().ok
