"""Main entry point when executing corpusqa as a package.

This allows running the package using python -m corpusqa.
"""

from corpusqa.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
