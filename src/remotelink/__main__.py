"""
Entry point for running remotelink as a module.

This allows the package to be executed with: python -m remotelink
"""

from remotelink.cli import main

if __name__ == "__main__":
    main()
