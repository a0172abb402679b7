import sys

from shortener.cli import main

if __name__ == "__main__":
    sys.exit(main())
