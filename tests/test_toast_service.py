import asyncio

from casedesk.services.toast_service import RequestToasts, Toast, ToastChannel


def test_history_is_bounded_and_newest_first():
    channel = ToastChannel(history_size=2)
    channel.success("one")
    channel.error("two")
    channel.info("three")

    assert [(t.kind, t.message) for t in channel.recent()] == [("info", "three"), ("error", "two")]


def test_listeners_receive_published_toasts():
    async def scenario():
        channel = ToastChannel()
        queue = channel.add_listener()
        channel.success("Case status updated to Closed")
        toast = await asyncio.wait_for(queue.get(), timeout=1)
        channel.remove_listener(queue)
        return toast, channel.listener_count

    toast, remaining = asyncio.run(scenario())

    assert toast.kind == "success"
    assert toast.message == "Case status updated to Closed"
    assert remaining == 0


def test_full_listener_is_dropped():
    async def scenario():
        channel = ToastChannel(max_queue_size=1)
        channel.add_listener()
        channel.info("first")
        channel.info("second")
        return channel.listener_count

    assert asyncio.run(scenario()) == 0


def test_request_toasts_forward_and_remember():
    channel = ToastChannel()
    toasts = RequestToasts(channel)

    toasts.error("Failed to update case status")

    assert [t["message"] for t in toasts.as_list()] == ["Failed to update case status"]
    assert channel.recent(1)[0].message == "Failed to update case status"


def test_toast_serializes():
    toast = Toast("info", "hello", created_at="2024-01-01T00:00:00+00:00")
    assert toast.to_dict() == {"kind": "info", "message": "hello", "created_at": "2024-01-01T00:00:00+00:00"}
