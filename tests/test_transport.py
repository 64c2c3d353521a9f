import pytest

from pagewise.core.exceptions import ActionFailed, TransportFailure
from pagewise.transport import LocalTransport, Message, Messenger, Response


@pytest.fixture
def transport():
    return LocalTransport()


def test_message_and_response_dicts():
    message = Message.from_dict({"action": "browser_click", "params": {"target": "Apply"}})
    assert message == Message("browser_click", {"target": "Apply"})
    assert message.to_dict() == {"action": "browser_click", "params": {"target": "Apply"}}

    assert Response(True, data=[1]).to_dict() == {"success": True, "data": [1]}
    assert Response(False).to_dict() == {"success": False, "error": "unknown error"}
    assert Response.from_dict({"success": False, "error": "x"}) == Response(False, error="x")


def test_send_wraps_handler_results(transport):
    transport.register("page", lambda message: message.params["n"] * 2)
    assert transport.send("page", Message("double", {"n": 4})) == Response(True, data=8)


def test_send_passes_explicit_responses_through(transport):
    transport.register("page", lambda message: Response(False, error="declined"))
    assert transport.send("page", Message("x")).error == "declined"


def test_handler_exception_becomes_failed_response(transport):
    def handler(message):
        raise RuntimeError("boom")

    transport.register("page", handler)
    response = transport.send("page", Message("x"))
    assert not response.success
    assert response.error == "boom"


def test_unregistered_target(transport):
    transport.register("page", lambda message: None)
    transport.unregister("page")
    assert not transport.is_alive("page")
    with pytest.raises(TransportFailure) as excinfo:
        transport.send("page", Message("x"))
    assert excinfo.value.reason == "no receiver registered"


class TestMessenger:
    def test_notify_is_best_effort(self, transport):
        messenger = Messenger(transport)
        assert messenger.notify("panel", Message("page_read")) is False

        transport.register("panel", lambda message: None)
        assert messenger.notify("panel", Message("page_read")) is True

    def test_notify_reports_rejection(self, transport):
        transport.register("panel", lambda message: Response(False, error="busy"))
        assert Messenger(transport).notify("panel", Message("page_read")) is False

    def test_request_returns_data(self, transport):
        transport.register("browser", lambda message: {"ok": message.action})
        assert Messenger(transport).request("browser", Message("ping")) == {"ok": "ping"}

    def test_request_raises_on_failed_response(self, transport):
        transport.register("browser", lambda message: Response(False, error="denied"))
        with pytest.raises(ActionFailed) as excinfo:
            Messenger(transport).request("browser", Message("browser_click"), action="click")
        assert excinfo.value.user_message == "Could not click: denied"

    def test_request_raises_when_unreachable(self, transport):
        with pytest.raises(TransportFailure) as excinfo:
            Messenger(transport).request("browser", Message("browser_navigate"))
        assert excinfo.value.action == "browser_navigate"
        assert excinfo.value.user_message == (
            "Could not browser navigate: context 'browser' is unreachable "
            "(no receiver registered)"
        )
