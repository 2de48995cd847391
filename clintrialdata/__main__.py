"""``python -m clintrialdata`` runs the command-line interface."""

from clintrialdata.cli import main


if __name__ == "__main__":  # pragma: no cover
    main()
