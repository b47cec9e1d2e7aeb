"""Entry point for 'python -m entitystore' command."""

from entitystore.cli import main

if __name__ == "__main__":
    main()
