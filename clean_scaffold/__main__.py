"""Entry point for ``python -m clean_scaffold``."""

from clean_scaffold.pipeline import main

if __name__ == "__main__":
    main()
