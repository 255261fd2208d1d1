"""Entry point for ``python -m forgectl`` (the process the launcher restarts)."""

from forgectl.cli import main

if __name__ == "__main__":
    main()
