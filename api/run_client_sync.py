"""
Script to sync this machine's local store with the server.

Settings come from PALABRA_SYNC_* environment variables, e.g.
PALABRA_SYNC_SERVER_URL and PALABRA_SYNC_ACCESS_TOKEN.

By default one cycle runs. With --watch the script keeps probing the
server, syncs each time the connection comes back and, while online,
every PALABRA_SYNC_SYNC_INTERVAL_SECONDS.
"""
import argparse
import sys
import time
from app.client import ClientSettings, ConnectivityMonitor, LocalStore, SyncApiClient, SyncEngine, SyncResult
from app.client.engine import STATUS_ERROR
import logging

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def build_engine(client_settings: ClientSettings, is_online=None) -> SyncEngine:
    store = LocalStore(client_settings.database_url)
    transport = SyncApiClient(
        client_settings.server_url,
        access_token=client_settings.access_token,
        timeout=client_settings.request_timeout_seconds,
        api_prefix=client_settings.api_prefix,
    )
    return SyncEngine(store, transport, client_settings, is_online=is_online)


def log_result(engine: SyncEngine, result: SyncResult) -> None:
    for stream, stream_result in result.streams.items():
        logger.info(
            f"{stream}: {stream_result.uploaded} uploaded, {stream_result.failed} rejected, "
            f"{stream_result.downloaded} downloaded, {stream_result.conflicts} conflicts, "
            f"checkpoint={stream_result.checkpoint}"
        )
    for error in result.errors:
        logger.warning(error)

    queue = engine.store.status()
    logger.info(f"Queue: {queue['pending']} pending, {queue['failed']} parked")


def poll_once(engine: SyncEngine, monitor: ConnectivityMonitor, client_settings: ClientSettings,
              last_sync_at: float, now: float) -> float:
    """
    One watch iteration: probe the server, then run the periodic sync if due.

    Returns:
        When the last periodic sync started (last_sync_at if none ran)
    """
    monitor.set_online(engine.transport.ping())

    interval = client_settings.sync_interval_seconds
    # A pending reconnect sync covers this round
    if not interval or not monitor.is_online() or monitor.reconnect_pending:
        return last_sync_at
    if now - last_sync_at < interval:
        return last_sync_at

    log_result(engine, engine.sync())
    return now


def watch(client_settings: ClientSettings, interval: float) -> None:
    """Probe the server every interval seconds and sync after each reconnect and periodically."""
    def on_reconnect():
        log_result(engine, engine.sync())

    monitor = ConnectivityMonitor(
        on_reconnect,
        stabilization_delay=client_settings.stabilization_delay_seconds,
        online=False,
    )
    engine = build_engine(client_settings, is_online=monitor.is_online)

    logger.info(f"Watching {client_settings.server_url} every {interval}s")
    last_sync_at = time.monotonic()
    try:
        while True:
            last_sync_at = poll_once(engine, monitor, client_settings, last_sync_at, time.monotonic())
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Stopping")
    finally:
        monitor.stop()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run offline sync cycles")
    parser.add_argument("--full", action="store_true", help="Ignore checkpoints and resync everything")
    parser.add_argument("--watch", type=float, metavar="SECONDS", help="Keep running, probing the server this often")
    args = parser.parse_args()

    client_settings = ClientSettings()
    if args.watch:
        watch(client_settings, args.watch)
        sys.exit(0)

    engine = build_engine(client_settings)
    result = engine.sync("full" if args.full else "incremental")
    log_result(engine, result)

    if result.status == STATUS_ERROR:
        sys.exit(1)
