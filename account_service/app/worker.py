"""사용량 집계 워커: entitlement.consumed 이벤트 -> usage_stats."""

from __future__ import annotations

import logging
import signal

from common.logger import setup_logger

from .event_handlers.usage_consumer import run_usage_consumer


logger = logging.getLogger(__name__)


def main() -> None:
    setup_logger(name="account-usage-worker")
    logger.info("account usage worker starting up")

    stop_flag = [False]

    def _signal_handler(signum, frame) -> None:  # type: ignore[unused-argument]
        logger.info("received signal %s, shutting down usage worker...", signum)
        stop_flag[0] = True

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    run_usage_consumer(stop_flag)


if __name__ == "__main__":  # pragma: no cover
    main()
