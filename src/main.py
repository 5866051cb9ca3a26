from src.app import AppSettings, run_bot
from src.bot import StudyBot

__all__ = ["main", "StudyBot"]


def main() -> None:
    """Entry point for the application."""
    settings = AppSettings.from_env()
    run_bot(settings)


if __name__ == "__main__":
    main()
