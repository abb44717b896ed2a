"""Enables ``python -m certhaproxy``."""
import sys

from certhaproxy import main

if __name__ == '__main__':
    sys.exit(main.main())
