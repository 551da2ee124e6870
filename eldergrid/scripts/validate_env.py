# eldergrid/scripts/validate_env.py
import logging
import sys

from eldergrid.utils.env import configure_logging, load_env, validate_env

logger = logging.getLogger(__name__)


def main() -> int:
    load_env()
    configure_logging()
    logger.info("Validating ElderGrid environment variables...")

    has_errors = False
    for check in validate_env():
        line = f"{check.name}: {check.status} ({check.description})"
        if check.preview:
            line += f" value={check.preview}"
        if not check.ok:
            logger.error(line)
            has_errors = True
        elif check.status.startswith("MISSING"):
            logger.warning(line)
        else:
            logger.info(line)

    if has_errors:
        logger.error("Environment validation failed!")
        logger.error("Check .env.local (or .env) in the project root and set the required Supabase variables.")
        return 1

    logger.info("All environment variables are valid. ElderGrid is ready to run.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
