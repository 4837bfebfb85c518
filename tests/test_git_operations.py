"""Tests for the per-repository git operations."""

import sys
from unittest.mock import AsyncMock

import pytest

from lfs_migrate.config.config import TransferMode
from lfs_migrate.git.auth import DestinationAuthenticator, authenticate_url, host_of
from lfs_migrate.git.command import CommandRunner, GitCommandError, GitOperationError
from lfs_migrate.git.lfs import SKIP_SMUDGE_ENV
from lfs_migrate.git.operations import GitOperationRunner
from lfs_migrate.models.repository import PullJob, SyncJob

from conftest import FakeRunner

TOKEN = 's3cr3t-token'


def make_operations(
    runner, mode=TransferMode.MIRROR, work_dir=None, target_hostname=None
):
    return GitOperationRunner(
        runner,
        mode=mode,
        token=TOKEN,
        work_dir=str(work_dir) if work_dir else None,
        target_hostname=target_hostname,
    )


def sync_job(work_dir):
    return SyncJob(name='repo-a', work_dir=str(work_dir), target_organization='target')


class TestAuthenticateURL:
    """Test token insertion into clone URLs."""

    def test_inserts_token(self):
        url = authenticate_url('https://github.com/org/repo.git', 'tok')
        assert url == 'https://tok@github.com/org/repo.git'

    def test_enterprise_url(self):
        url = authenticate_url('https://ghe.example.com/org/repo.git', 'tok')
        assert url == 'https://tok@ghe.example.com/org/repo.git'

    @pytest.mark.parametrize('url', ['github.com/org/repo.git', '', 'https://'])
    def test_invalid_url(self, url):
        with pytest.raises(GitOperationError, match='invalid clone URL format'):
            authenticate_url(url, 'tok')

    def test_host_of(self):
        assert host_of(None) is None
        assert host_of('https://ghe.example.com') == 'ghe.example.com'


class TestMirrorPull:
    """Test mirror mode pulls."""

    @pytest.mark.asyncio
    async def test_first_pull_clones_mirror(self, fake_runner, tmp_path):
        operations = make_operations(fake_runner, work_dir=tmp_path)
        job = PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')

        path = await operations.pull(job)

        assert path == tmp_path / 'repo-a'
        assert fake_runner.commands == [
            f'git clone --mirror https://{TOKEN}@github.com/org/repo-a.git {path}',
            'git lfs fetch --all origin',
        ]
        clone = fake_runner.calls[0]
        assert clone.cwd == str(tmp_path)
        assert clone.env == SKIP_SMUDGE_ENV
        assert fake_runner.calls[1].cwd == str(path)

    @pytest.mark.asyncio
    async def test_existing_clone_is_updated(self, tmp_path):
        runner = FakeRunner(
            secrets=[TOKEN], responses={('git', 'rev-parse'): 'true\n'}
        )
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(runner, work_dir=tmp_path)
        job = PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')

        await operations.pull(job)

        assert runner.commands == [
            'git rev-parse --is-bare-repository',
            f'git remote set-url origin https://{TOKEN}@github.com/org/repo-a.git',
            'git fetch --prune origin +refs/*:refs/*',
            'git lfs fetch --all origin',
        ]
        assert not any(c.startswith('git clone') for c in runner.commands)

    @pytest.mark.asyncio
    async def test_invalid_clone_url_fails_job(self, fake_runner, tmp_path):
        operations = make_operations(fake_runner, work_dir=tmp_path)
        job = PullJob(name='repo-a', clone_url='not-a-url')

        with pytest.raises(GitOperationError, match='invalid clone URL format'):
            await operations.pull(job)

        assert fake_runner.calls == []

    @pytest.mark.asyncio
    async def test_missing_work_dir(self, fake_runner):
        operations = make_operations(fake_runner)
        job = PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')

        with pytest.raises(GitOperationError, match='work directory'):
            await operations.pull(job)


class TestBranchPull:
    """Test branch mode pulls."""

    @pytest.mark.asyncio
    async def test_first_pull_clones_working_copy(self, fake_runner, tmp_path):
        operations = make_operations(fake_runner, TransferMode.BRANCH, tmp_path)
        job = PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')

        path = await operations.pull(job)

        assert fake_runner.commands[0] == (
            f'git clone https://{TOKEN}@github.com/org/repo-a.git {path}'
        )
        assert fake_runner.commands[-1] == 'git lfs fetch --all origin'

    @pytest.mark.asyncio
    async def test_update_fetches_origin(self, tmp_path):
        runner = FakeRunner(responses={('git', 'rev-parse'): 'false'})
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(runner, TransferMode.BRANCH, tmp_path)

        await operations.pull(
            PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')
        )

        assert 'git fetch --prune --tags origin' in runner.commands

    @pytest.mark.asyncio
    async def test_mode_mismatch_is_rejected(self, tmp_path):
        runner = FakeRunner(responses={('git', 'rev-parse'): 'true'})
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(runner, TransferMode.BRANCH, tmp_path)

        with pytest.raises(GitOperationError, match='mirror mode'):
            await operations.pull(
                PullJob(name='repo-a', clone_url='https://github.com/org/repo-a.git')
            )


class TestMirrorSync:
    """Test mirror mode syncs."""

    @pytest.mark.asyncio
    async def test_push_all_refs(self, tmp_path):
        runner = FakeRunner(responses={('git', 'remote'): 'origin'})
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(runner, work_dir=tmp_path)
        job = sync_job(tmp_path)

        result = await operations.sync(job)

        assert runner.commands == [
            'git lfs install --local',
            'git remote',
            'git remote add destination https://github.com/target/repo-a.git',
            'git lfs push --all destination',
            'git push destination +refs/heads/*:refs/heads/* +refs/tags/*:refs/tags/*',
        ]
        assert result.tags_pushed is True

    @pytest.mark.asyncio
    async def test_stale_destination_is_replaced(self, tmp_path):
        runner = FakeRunner(responses={('git', 'remote'): 'origin\ndestination\n'})
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(
            runner, work_dir=tmp_path, target_hostname='https://ghe.example.com'
        )
        job = sync_job(tmp_path)

        await operations.sync(job)

        assert (
            'git remote set-url destination https://ghe.example.com/target/repo-a.git'
            in runner.commands
        )

    @pytest.mark.asyncio
    async def test_missing_clone(self, fake_runner, tmp_path):
        operations = make_operations(fake_runner, work_dir=tmp_path)
        job = sync_job(tmp_path)

        with pytest.raises(GitOperationError, match='run pull first'):
            await operations.sync(job)

        assert fake_runner.calls == []


class TestBranchSync:
    """Test branch mode syncs."""

    BRANCHES = (
        'refs/remotes/origin/HEAD\n'
        'refs/remotes/origin/feature-x\n'
        'refs/remotes/origin/main\n'
    )

    @pytest.mark.asyncio
    async def test_default_branch_first(self, tmp_path):
        runner = FakeRunner(
            responses={
                ('git', 'ls-remote'): 'ref: refs/heads/main\tHEAD\nabc123\tHEAD\n',
                ('git', 'for-each-ref'): self.BRANCHES,
            }
        )
        (tmp_path / 'repo-a').mkdir()
        operations = make_operations(runner, TransferMode.BRANCH, tmp_path)
        job = sync_job(tmp_path)

        result = await operations.sync(job)

        commands = runner.commands
        main_push = commands.index('git lfs push --all destination main')
        feature_push = commands.index('git lfs push --all destination feature-x')
        assert main_push < feature_push
        assert commands.index('git checkout -f -B main origin/main') < main_push
        assert 'git clean -fdx' in commands
        assert 'git push destination refs/heads/main:refs/heads/main' in commands
        assert commands[-1] == 'git push destination --tags'
        assert result.branches_pushed == ['main', 'feature-x']

    @pytest.mark.asyncio
    async def test_default_branch_falls_back_to_source_head(self, tmp_path):
        runner = FakeRunner(
            responses={('git', 'symbolic-ref'): 'refs/remotes/origin/develop'},
            failures={('git', 'ls-remote'): 'fatal: repository not found'},
        )
        operations = make_operations(runner, TransferMode.BRANCH, tmp_path)

        assert await operations.pusher.default_branch(str(tmp_path)) == 'develop'

    @pytest.mark.asyncio
    async def test_default_branch_falls_back_to_main(self, tmp_path):
        runner = FakeRunner(
            failures={
                ('git', 'ls-remote'): 'fatal: repository not found',
                ('git', 'symbolic-ref'): 'fatal: ref is not a symbolic ref',
            }
        )
        operations = make_operations(runner, TransferMode.BRANCH, tmp_path)

        assert await operations.pusher.default_branch(str(tmp_path)) == 'main'


class TestRedaction:
    """Test that tokens never reach error text."""

    @pytest.mark.asyncio
    async def test_command_error_is_redacted(self):
        runner = CommandRunner(secrets=[TOKEN])
        script = (
            'import sys; '
            f'sys.stderr.write("fatal: unable to access https://{TOKEN}@github.com/"); '
            'sys.exit(128)'
        )

        with pytest.raises(GitCommandError) as exc_info:
            await runner.run([sys.executable, '-c', script])

        assert TOKEN not in str(exc_info.value)
        assert '****' in str(exc_info.value)
        assert exc_info.value.returncode == 128

    @pytest.mark.asyncio
    async def test_missing_program(self):
        runner = CommandRunner()

        with pytest.raises(GitCommandError):
            await runner.run(['definitely-not-a-real-program-lfs-migrate'])

    @pytest.mark.asyncio
    async def test_unexpected_error_is_redacted(self, fake_runner, tmp_path):
        operations = make_operations(fake_runner, work_dir=tmp_path)
        operations.cloner.pull = AsyncMock(
            side_effect=RuntimeError(f'boom https://{TOKEN}@github.com/org/a.git')
        )

        with pytest.raises(GitOperationError) as exc_info:
            await operations.pull(
                PullJob(name='a', clone_url='https://github.com/org/a.git')
            )

        assert TOKEN not in str(exc_info.value)
        assert '****' in str(exc_info.value)


class TestDestinationAuthenticator:
    """Test one-time destination credential setup."""

    @pytest.mark.asyncio
    async def test_github_com(self, fake_runner):
        await DestinationAuthenticator(fake_runner, TOKEN).setup()

        assert fake_runner.commands == [
            'gh auth login --with-token',
            'git config --global credential.helper !gh auth git-credential',
        ]
        assert fake_runner.calls[0].input_text == TOKEN

    @pytest.mark.asyncio
    async def test_enterprise_host(self, fake_runner):
        await DestinationAuthenticator(
            fake_runner, TOKEN, 'https://ghe.example.com'
        ).setup()

        assert fake_runner.commands[0] == (
            'gh auth login --with-token --hostname ghe.example.com'
        )
