import asyncio
import signal
import sys

from dotenv import load_dotenv

from core.config_loader import ConfigLoader
from core.context import RuntimeSettings
from core.registry import TournamentRegistry
from core.scheduler import AsyncioScheduler
from runtime.version import as_string
from services.actions.executor import TaggedActionExecutor
from services.events.publisher import CompositeEventPublisher, EventBus
from services.events.state_file import StateFileEventPublisher
from services.events.webhook import WebhookEventPublisher
from services.players.directory import InMemoryPlayerDirectory
from shared.logging.logger import get_logger
from shared.storage.state_publisher import StateFilePublisher
from shared.storage.tournaments.store import SQLiteTournamentStorage

log = get_logger("core.app")


def _log_action(player, payload: str) -> None:
    target = player.name if player is not None else "<server>"
    log.info(f"[action] {target}: {payload}")


def build_action_executor() -> TaggedActionExecutor:
    executor = TaggedActionExecutor()
    executor.register_handler("LOG", _log_action)
    executor.register_handler("MESSAGE", _log_action)
    return executor


async def main(stop_event: asyncio.Event):
    # --------------------------------------------------
    # ENV
    # --------------------------------------------------
    load_dotenv()
    settings = RuntimeSettings.from_env()
    log.info("Environment variables loaded")
    log.info(f"{as_string()} booting")

    # --------------------------------------------------
    # CORE SYSTEMS
    # --------------------------------------------------
    loop = asyncio.get_running_loop()
    scheduler = AsyncioScheduler(loop, max_workers=settings.worker_threads)
    storage = SQLiteTournamentStorage(settings.db_path)
    actions = build_action_executor()
    players = InMemoryPlayerDirectory(storage=storage, actions=actions, scheduler=scheduler)

    bus = EventBus()
    events = CompositeEventPublisher([bus, StateFileEventPublisher(StateFilePublisher(settings.state_dir))])

    webhook = None
    if settings.webhook_url:
        webhook = WebhookEventPublisher(settings.webhook_url)
        events.add(webhook)
        log.info("Webhook event publisher enabled")

    # --------------------------------------------------
    # LOAD TOURNAMENTS
    # --------------------------------------------------
    registry = TournamentRegistry(
        storage=storage,
        actions=actions,
        events=events,
        players=players,
        scheduler=scheduler,
        settings=settings,
    )
    tournaments = registry.load(ConfigLoader(settings.config_path))
    log.info(f"Loaded {len(tournaments)} tournament(s)")

    registry.boot()
    registry.start_watching()

    # --------------------------------------------------
    # BLOCK UNTIL SHUTDOWN SIGNAL
    # --------------------------------------------------
    await stop_event.wait()

    log.info("Shutdown initiated")

    # --------------------------------------------------
    # ORDERLY SHUTDOWN: TOURNAMENTS, THEN TASKS
    # --------------------------------------------------
    try:
        registry.shutdown()
    except Exception as e:
        log.warning(f"Registry shutdown error ignored: {e}")

    if webhook is not None:
        try:
            await webhook.drain()
        except Exception as e:
            log.warning(f"Webhook drain error ignored: {e}")

    try:
        await loop.run_in_executor(None, scheduler.shutdown)
    except Exception as e:
        log.warning(f"Scheduler shutdown error ignored: {e}")

    storage.close()
    log.info("Tournament runtime stopped")


# ----------------------------------------------------------------------
# SIGNAL HANDLING (WINDOWS-SAFE)
# ----------------------------------------------------------------------

def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    stop_event: asyncio.Event,
):
    """
    Windows-safe Ctrl+C handler.
    Uses signal.signal + asyncio.Event to unwind cleanly.
    """

    def _handler(signum, frame):
        try:
            loop.call_soon_threadsafe(stop_event.set)
        except RuntimeError:
            stop_event.set()

    try:
        signal.signal(signal.SIGINT, _handler)
        signal.signal(signal.SIGTERM, _handler)
    except ValueError:
        log.debug("Signal handlers unavailable outside the main thread")


# ----------------------------------------------------------------------
# ENTRYPOINT
# ----------------------------------------------------------------------

def run():
    stop_event = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    _install_signal_handlers(loop, stop_event)

    try:
        loop.run_until_complete(main(stop_event))

    except KeyboardInterrupt:
        log.info("KeyboardInterrupt received; shutdown initiated")
        stop_event.set()
        loop.run_until_complete(asyncio.sleep(0))

    finally:
        # --------------------------------------------------
        # CANCEL REMAINING TASKS (CLEANLY)
        # --------------------------------------------------
        pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in pending:
            task.cancel()

        if pending:
            loop.run_until_complete(
                asyncio.gather(*pending, return_exceptions=True)
            )

        # --------------------------------------------------
        # FINAL LOOP CLEANUP
        # --------------------------------------------------
        loop.run_until_complete(loop.shutdown_asyncgens())

        asyncio.set_event_loop(None)
        loop.close()


if __name__ == "__main__":
    run()
    sys.exit(0)
