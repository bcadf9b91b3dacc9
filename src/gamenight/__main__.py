"""Entry point for 'python -m gamenight'."""

from gamenight.cli import main

if __name__ == "__main__":
    main()
