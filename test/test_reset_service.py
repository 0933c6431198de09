import asyncio
from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from core.schema.reset_config_schema import ResetServiceConfig
from reset_service import PLCResetService

JAKARTA = ZoneInfo("Asia/Jakarta")


@pytest.fixture
def config(schedule, make_descriptor) -> ResetServiceConfig:
    return ResetServiceConfig(
        reset_schedule=schedule,
        machine_list=[make_descriptor("45051"), make_descriptor("45050", host="10.42.46.2")],
        connect_settle_ms=0,
    )


@pytest.fixture
def service(config, fake_gateway_cls):
    return PLCResetService(config, gateway_factory=lambda d: fake_gateway_cls(d, connected=False))


def _gateways(service: PLCResetService):
    return service.device_manager.gateway_dict


@pytest.mark.asyncio
async def test_start_connects_then_schedules(service):
    await service.start()
    try:
        assert service.is_started is True
        assert service.scheduler.is_running is True
        assert all(g.is_connected for g in _gateways(service).values())
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_stop_is_idempotent_and_disconnects(service):
    await service.start()
    await service.stop()
    await service.stop()

    assert service.is_started is False
    assert service.scheduler.is_running is False
    assert all(g.disconnect_calls == 1 for g in _gateways(service).values())


@pytest.mark.asyncio
async def test_stop_without_start_is_safe(service):
    await service.stop()

    assert all(g.disconnect_calls == 0 for g in _gateways(service).values())


@pytest.mark.asyncio
async def test_start_survives_unreachable_machine(service):
    _gateways(service)["45050"].fail_connects = 1

    await service.start()
    try:
        assert service.scheduler.is_running is True
        assert _gateways(service)["45050"].is_connected is False
    finally:
        await service.stop()


@pytest.mark.asyncio
async def test_run_once_forces_cycle(service):
    result = await service.run_once()

    assert result.forced is True
    assert result.all_succeeded is True
    assert all(g.counter == 0 for g in _gateways(service).values())


@pytest.mark.asyncio
async def test_both_triggers_in_window_produce_one_cycle(service):
    service.window_evaluator.now = lambda: datetime(2026, 10, 19, 16, 26, tzinfo=JAKARTA)
    await service.device_manager.connect_all()
    await service.scheduler.start()
    try:
        primary_task = service.scheduler.primary.dispatch()
        pre_check_task = service.scheduler.pre_check.dispatch()
        results = await asyncio.gather(primary_task, pre_check_task)
    finally:
        await service.scheduler.stop()

    assert sum(1 for r in results if r is not None) == 1
    assert service.coordinator.fleet_state.last_reset_date == date(2026, 10, 19)
    assert all(len(g.write_calls) == 1 for g in _gateways(service).values())
