import asyncio

from flight_tracker.tasks import PeriodicTask


def test_periodic_task_survives_failures_and_stops():
    runs = []

    async def callback():
        runs.append(len(runs))
        if len(runs) == 1:
            raise RuntimeError("first run fails")

    async def scenario():
        task = PeriodicTask("t", 0.01, callback)
        task.start()
        await asyncio.sleep(0.1)
        assert task.is_running()
        await task.stop()
        assert not task.is_running()
        count = len(runs)
        await asyncio.sleep(0.05)
        return count

    count = asyncio.run(scenario())

    assert count >= 2
    assert len(runs) == count


def test_stop_before_start_is_a_no_op():
    async def callback():
        pass

    asyncio.run(PeriodicTask("idle", 1, callback).stop())
