"""Allow running protoguard as a module: python -m protoguard."""

from protoguard.cli import main

if __name__ == "__main__":
    main()
