import argparse
import asyncio
import json
import logging
import signal

from dotenv import load_dotenv

from core.model.reset_state import CycleResult
from core.schema.reset_config_schema import ResetServiceConfig
from core.util.config_manager import ConfigManager
from core.util.logger_config import setup_logging
from core.util.logging_noise import quiet_pymodbus_logs
from reset_service import PLCResetService

logger = logging.getLogger("CoreMain")


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows event loops do not support add_signal_handler
            logger.debug(f"Signal handler for {sig.name} not supported on this platform")


async def main(config_path: str, log_level: str | None = None, run_once: bool = False) -> int:
    load_dotenv()
    config: ResetServiceConfig = ConfigManager.load_reset_config(config_path)

    schedule = config.reset_schedule
    setup_logging(
        log_level=log_level or config.log_level,
        log_to_file=config.log_to_file,
        log_dir=config.log_dir,
        tz=schedule.tzinfo,
    )
    quiet_pymodbus_logs()

    logger.info("=" * 60)
    logger.info("PLC COUNTER RESET SERVICE")
    logger.info(f"  Config:   {config_path}")
    logger.info(f"  Machines: {', '.join(d.code for d in config.machine_list) or '(none)'}")
    logger.info(f"  Reset:    {schedule.hour:02d}:{schedule.minute:02d} {schedule.timezone}")
    logger.info(f"  Retries:  {schedule.max_retries} x {schedule.retry_delay_ms}ms")
    logger.info("=" * 60)

    service = PLCResetService(config)

    if run_once:
        try:
            result: CycleResult | None = await service.run_once()
        finally:
            await service.stop()
        if result is None:
            return 1
        logger.info(f"Cycle status: {json.dumps(service.coordinator.status(), ensure_ascii=False)}")
        return 0 if result.all_succeeded else 2

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    try:
        await service.start()
        await stop_event.wait()
        logger.info("Received stop signal. Shutting down Reset Service gracefully...")
    finally:
        await service.stop()
    return 0


def cli() -> None:
    parser = argparse.ArgumentParser(description="PLC daily counter reset service")
    parser.add_argument("--config", default="res/reset_service.yml", help="Path to reset service YAML")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument(
        "--run-once", action="store_true", help="Force one reset cycle now, ignoring the window, then exit"
    )

    args = parser.parse_args()
    raise SystemExit(asyncio.run(main(config_path=args.config, log_level=args.log_level, run_once=args.run_once)))


if __name__ == "__main__":
    cli()
