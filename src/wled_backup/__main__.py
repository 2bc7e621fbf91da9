"""Allow ``python -m wled_backup``."""

from wled_backup.cli import main

if __name__ == "__main__":
    main()
