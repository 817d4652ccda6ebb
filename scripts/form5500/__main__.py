"""
Entry point for running the Form 5500 module as a script.

Usage:
    python -m scripts.form5500 rebuild --section latest --years 2019 2020
    python -m scripts.form5500 unmatched-rks
"""

from .cli import main

if __name__ == '__main__':
    main()
