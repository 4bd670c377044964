"""Record ingestion from files."""

from linknode.ingestion.csv_loader import load_csv, load_csv_files

__all__ = [
    "load_csv",
    "load_csv_files",
]
