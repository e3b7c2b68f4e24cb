"""Allow ``python -m reelcritic.main serve``."""

from reelcritic.cli import main

if __name__ == "__main__":
    main()
