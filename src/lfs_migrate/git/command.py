"""Subprocess execution for git, git-lfs and gh with secret redaction."""

import asyncio
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from loguru import logger

REDACTED = '****'


def redact(text: str, secrets: Iterable[str]) -> str:
    """Replace every occurrence of each secret with ``****``."""
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


class GitCommandError(Exception):
    """A git, git-lfs or gh command exited with a nonzero status.

    Command line and output are stored already redacted.
    """

    def __init__(self, command: str, returncode: Optional[int], output: str):
        self.command = command
        self.returncode = returncode
        self.output = output
        detail = output.strip() or 'no output'
        if returncode is None:
            message = f'command failed: {command}: {detail}'
        else:
            message = f'command failed with exit code {returncode}: {command}: {detail}'
        super().__init__(message)


class GitOperationError(Exception):
    """A per-repository git operation could not be carried out."""

    pass


@dataclass
class CommandResult:
    """Output of a finished command."""

    returncode: int
    stdout: str
    stderr: str


class CommandRunner:
    """Runs external commands asynchronously.

    Every secret handed to the runner is masked in logged command lines and
    in the text of raised errors.
    """

    def __init__(
        self,
        secrets: Sequence[str] = (),
        timeout: Optional[float] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        """Initialize command runner.

        Args:
            secrets: Strings to mask in logs and errors
            timeout: Seconds before a command is killed, None waits forever
            env: Extra environment variables for every command
        """
        self.secrets = [s for s in secrets if s]
        self.timeout = timeout
        self.env = {'GIT_TERMINAL_PROMPT': '0'}
        self.env.update(env or {})
        self.logger = logger.bind(component='CommandRunner')

    def redact(self, text: str) -> str:
        return redact(text, self.secrets)

    def _format(self, args: Sequence[str]) -> str:
        return self.redact(' '.join(args))

    async def run(
        self,
        args: List[str],
        cwd: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        input_text: Optional[str] = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a command to completion.

        Args:
            args: Program and arguments
            cwd: Working directory
            env: Extra environment variables for this command
            input_text: Text written to the command's stdin
            check: Raise GitCommandError on a nonzero exit status

        Returns:
            Command result with decoded output

        Raises:
            GitCommandError: If the command cannot start, times out or fails
        """
        command = self._format(args)
        self.logger.debug(f'Executing command: {command} (cwd: {cwd or os.getcwd()})')

        process_env = dict(os.environ)
        process_env.update(self.env)
        process_env.update(env or {})

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE if input_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
                env=process_env,
            )
        except OSError as e:
            raise GitCommandError(command, None, self.redact(str(e))) from None

        communicate = process.communicate(
            input_text.encode() if input_text is not None else None
        )
        try:
            if self.timeout:
                stdout, stderr = await asyncio.wait_for(communicate, self.timeout)
            else:
                stdout, stderr = await communicate
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise GitCommandError(
                command, None, f'timed out after {self.timeout} seconds'
            ) from None

        result = CommandResult(
            returncode=process.returncode,
            stdout=stdout.decode(errors='replace') if stdout else '',
            stderr=stderr.decode(errors='replace') if stderr else '',
        )

        if check and result.returncode != 0:
            output = result.stderr or result.stdout
            raise GitCommandError(command, result.returncode, self.redact(output))

        return result

    async def git(self, *args: str, cwd: Optional[str] = None, **kwargs) -> str:
        """Run a git command and return its stripped stdout."""
        result = await self.run(['git', *args], cwd=cwd, **kwargs)
        return result.stdout.strip()
