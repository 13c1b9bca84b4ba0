"""
Package entry point.

Allows running the application via:

    python -m quartertable

This simply forwards execution to quartertable.cli.main().
"""

from quartertable.cli import main

if __name__ == "__main__":
    main()
