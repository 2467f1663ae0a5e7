"""Allow running crossbuild as ``python -m crossbuild``."""

from crossbuild.cli import main

if __name__ == "__main__":
    main()
