"""Shared test fixtures."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pytest

from lfs_migrate.git.command import CommandResult, GitCommandError, redact


@dataclass
class RecordedCall:
    args: List[str]
    cwd: Optional[str]
    env: Optional[Dict[str, str]]
    input_text: Optional[str]

    @property
    def command(self) -> str:
        return ' '.join(self.args)


class FakeRunner:
    """Records commands instead of running them.

    ``responses`` and ``failures`` are keyed by an argument prefix such as
    ``('git', 'ls-remote')``; the first matching key wins.
    """

    def __init__(self, secrets=(), responses=None, failures=None):
        self.secrets = [s for s in secrets if s]
        self.responses: Dict[Tuple[str, ...], str] = dict(responses or {})
        self.failures: Dict[Tuple[str, ...], str] = dict(failures or {})
        self.calls: List[RecordedCall] = []

    def redact(self, text: str) -> str:
        return redact(text, self.secrets)

    @staticmethod
    def _match(table, args):
        for key, value in table.items():
            if tuple(args[: len(key)]) == key:
                return value
        return None

    async def run(self, args, cwd=None, env=None, input_text=None, check=True):
        args = [str(a) for a in args]
        self.calls.append(RecordedCall(args, cwd, env, input_text))

        error = self._match(self.failures, args)
        if error is not None:
            raise GitCommandError(self.redact(' '.join(args)), 1, self.redact(error))

        stdout = self._match(self.responses, args) or ''
        return CommandResult(returncode=0, stdout=stdout, stderr='')

    async def git(self, *args, cwd=None, **kwargs):
        result = await self.run(['git', *args], cwd=cwd, **kwargs)
        return result.stdout.strip()

    @property
    def commands(self) -> List[str]:
        return [call.command for call in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner(secrets=['s3cr3t-token'])
