"""Main entry point for the libraryledger package."""

from libraryledger.cli import main

if __name__ == "__main__":
    main()
