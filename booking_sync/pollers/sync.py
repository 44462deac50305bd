from booking_sync.db.engine import engine
from booking_sync.logging_config import setup_logging
from booking_sync.services.scheduler import run_forever

# Setup logging
setup_logging()


def main() -> None:
    # Dispatch scheduled syncs for every due integration until interrupted
    run_forever(engine)


if __name__ == "__main__":
    main()
