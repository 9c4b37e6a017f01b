"""
Main entry point for the SportLens batch core.

Usage:
    python main.py photos/*.jpg
    python main.py photos/*.jpg --process-all
"""

from sportlens.cli import main


if __name__ == "__main__":
    main()
