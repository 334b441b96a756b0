"""Generate the current month's salaries for every active company.

Meant for a daily cron job when the HTTP cron endpoint is not used.
"""

from __future__ import annotations

import importlib
import logging

from rozgarpay.config import get_settings_module
from rozgarpay.container import build_container
from rozgarpay.core import constants

logger = logging.getLogger("rozgarpay.generate_salaries")


def main() -> int:
    settings = importlib.import_module(get_settings_module())
    logging.basicConfig(
        level=getattr(logging, str(getattr(settings, "LOG_LEVEL", "INFO")).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    container = build_container(
        db_config=settings.DB_CONFIG,
        default_timezone=getattr(settings, "DEFAULT_TIMEZONE", constants.DEFAULT_TIMEZONE),
    )

    run = container.scheduler.run()
    for company in run.companies:
        if company.error:
            logger.error("company=%s failed: %s", company.company_id, company.error)
            continue
        for err in company.result.errors:
            logger.warning("company=%s user=%s %s: %s", company.company_id, err.user_id, err.kind, err.message)

    logger.info("processed=%s errors=%s", run.total_processed, run.total_errors)
    return 1 if run.total_errors else 0


if __name__ == "__main__":
    raise SystemExit(main())
