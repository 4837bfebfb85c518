"""CSV exchange file shared by export, pull and sync."""

import csv
from pathlib import Path
from typing import Iterable

from ..models.repository import RepositoryRecord

EXCHANGE_HEADER = ['Repository', 'GitAttributesPaths', 'CloneURL']
EXCHANGE_COLUMNS = len(EXCHANGE_HEADER)


def write_records(path: str, records: Iterable[RepositoryRecord]) -> int:
    """Write records to an exchange file, replacing it.

    Returns:
        Number of data rows written
    """
    output_path = Path(path)
    if output_path.parent != Path('.'):
        output_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(EXCHANGE_HEADER)
        for record in records:
            writer.writerow(record.to_row())
            count += 1

    return count
