"""Allow ``python -m totpgate``."""

from totpgate.cli import main

if __name__ == "__main__":
    main()
