"""Module wrapper so running ``python -m clintrialdata.cli`` matches the console script."""

from clintrialdata.cli import main


if __name__ == "__main__":  # pragma: no cover
    main()
