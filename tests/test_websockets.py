import asyncio

from api.websockets import latest_snapshot_sink
from services.mock_data import get_mock_activities


def test_slow_client_only_keeps_the_newest_snapshot() -> None:
    async def scenario() -> None:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        put_latest = latest_snapshot_sink(queue)
        older = get_mock_activities()[:2]
        newer = get_mock_activities()[:4]

        put_latest(older)
        put_latest(newer)

        assert queue.qsize() == 1
        assert await queue.get() is newer

        put_latest(older)
        assert await queue.get() is older

    asyncio.run(scenario())
