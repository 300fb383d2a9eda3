"""Entry point for 'python -m cosmodb' command."""

from cosmodb.cli import main

if __name__ == "__main__":
    main()
