"""Deduplicating job producer reading the exchange file."""

import csv
from typing import BinaryIO, Callable, Generic, Iterator, List, Optional, Set, TypeVar

from loguru import logger

from .errors import InputFileError
from .exchange import EXCHANGE_COLUMNS

JobT = TypeVar('JobT')


class JobSource(Generic[JobT]):
    """Turns exchange file rows into one job per distinct repository name.

    Use as a context manager: entering opens the file and consumes the header
    row, so a missing or empty file fails before any worker starts. Iterating
    then reads the remaining rows lazily in file order.
    """

    def __init__(self, path: str, job_factory: Callable[[List[str]], JobT]):
        """Initialize job source.

        Args:
            path: Exchange CSV file
            job_factory: Builds a job from a validated 3-column row
        """
        self.path = path
        self.job_factory = job_factory
        self.seen: Set[str] = set()
        self.skipped = 0
        self.duplicates = 0
        self._file: Optional[BinaryIO] = None
        self._line_num = 0
        self._reader = None
        self.logger = logger.bind(component='JobSource')

    def __enter__(self) -> 'JobSource[JobT]':
        try:
            self._file = open(self.path, 'rb')
        except OSError as e:
            raise InputFileError(self.path, f'error opening input file: {e}', e) from e

        try:
            header = self._file.readline().decode('utf-8-sig')
            next(csv.reader([header]), None)
        except (UnicodeDecodeError, csv.Error) as e:
            self.close()
            raise InputFileError(self.path, f'error reading CSV header: {e}', e) from e

        if not header:
            self.close()
            raise InputFileError(self.path, 'error reading CSV header: file is empty')

        self._line_num = 1
        self._reader = csv.reader(self._lines())
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def _lines(self) -> Iterator[str]:
        """Decode the remaining lines one at a time, skipping invalid UTF-8."""
        for raw in self._file:
            self._line_num += 1
            try:
                line = raw.decode('utf-8')
            except UnicodeDecodeError as e:
                self.logger.warning(
                    f'Invalid UTF-8 in CSV record at line {self._line_num}: {e}'
                )
                self.skipped += 1
                continue
            yield line

    def __iter__(self) -> Iterator[JobT]:
        if self._reader is None:
            raise RuntimeError('JobSource must be opened before iterating')

        while True:
            try:
                record = next(self._reader)
            except StopIteration:
                return
            except csv.Error as e:
                self.logger.warning(
                    f'Error reading CSV record at line {self._line_num}: {e}'
                )
                self.skipped += 1
                continue

            if not record:
                continue

            if len(record) != EXCHANGE_COLUMNS:
                self.logger.warning(
                    f'Invalid CSV record format at line {self._line_num}, '
                    f'expected {EXCHANGE_COLUMNS} columns got {len(record)}'
                )
                self.skipped += 1
                continue

            name = record[0]
            if name in self.seen:
                self.duplicates += 1
                continue
            self.seen.add(name)

            try:
                job = self.job_factory(record)
            except ValueError as e:
                self.logger.warning(
                    f'Invalid CSV record at line {self._line_num}: {e}'
                )
                self.skipped += 1
                continue

            yield job
