"""Console entry point."""

from lifecycle_worker.cli.main import main

if __name__ == "__main__":
    main()
