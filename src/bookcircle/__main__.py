"""Main entry point for the bookcircle package."""

from bookcircle.cli import main

if __name__ == "__main__":
    main()
