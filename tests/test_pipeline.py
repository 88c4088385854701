"""
Tests for backup orchestration.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from doubles import (
    ORG_URL,
    PROJECT,
    RecordingExecutor,
    failing,
    fake_clone,
    fake_tar,
    make_client,
)

from repo_backup.core.config import BackupConfig, HostingConfig, StorageConfig
from repo_backup.core.exceptions import ListingError
from repo_backup.core.pipeline import (
    EXIT_FATAL,
    EXIT_OK,
    EXIT_UPLOADS_FAILED,
    BackupPipeline,
    RepositoryStage,
    find_container_collisions,
)
from repo_backup.execution.executor import CommandResult

RUN_DATE = "2024-03-01"


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.work_dir = self.tmpdir / "work"
        self.config = BackupConfig(
            hosting=HostingConfig(organization_url=ORG_URL, project=PROJECT, credential="pat"),
            storage=StorageConfig(account_name="backups", account_key="key"),
            work_dir=str(self.work_dir),
            run_date=RUN_DATE,
        )
        self.executor = RecordingExecutor({"git clone": fake_clone(), "tar": fake_tar})
        self.lines = []

    def tearDown(self):
        shutil.rmtree(self.tmpdir)

    def make_pipeline(self, names):
        return BackupPipeline(
            self.config,
            executor=self.executor,
            client=make_client(names),
            echo=self.lines.append,
        )

    def cloned_names(self):
        return [Path(call.args[-1]).name for call in self.executor.calls_for("git clone")]


class TestSuccessfulRun(PipelineTestCase):
    """Tests for a run where every step succeeds."""

    def test_all_repositories_backed_up(self):
        summary = self.make_pipeline(["Api", "Web App"]).run()

        self.assertEqual(summary.exit_code, EXIT_OK)
        self.assertEqual(len(summary.succeeded), 2)
        self.assertEqual(self.cloned_names(), ["Api", "Web App"])
        self.assertTrue(all(r.stage == RepositoryStage.CLEANED for r in summary.results))

    def test_local_artifacts_removed(self):
        summary = self.make_pipeline(["Api"]).run()

        result = summary.results[0]
        self.assertFalse((self.work_dir / "Api").exists())
        self.assertFalse(Path(result.archive).exists())
        self.assertEqual(Path(result.archive).name, f"Api_{RUN_DATE}.tar.gz")

    def test_step_order(self):
        self.make_pipeline(["Api"]).run()

        self.assertEqual(
            [call.key for call in self.executor.calls],
            ["az container create", "git clone", "tar", "az blob upload"],
        )

    def test_upload_targets_container_and_archive(self):
        self.make_pipeline(["Web-App"]).run()

        upload = self.executor.calls_for("az blob upload")[0].args
        self.assertEqual(upload[upload.index("--container-name") + 1], "webapp")
        self.assertEqual(upload[upload.index("--name") + 1], f"Web-App_{RUN_DATE}.tar.gz")
        self.assertEqual(upload[upload.index("--tier") + 1], "Cool")

    def test_run_date_shared_across_repositories(self):
        self.make_pipeline(["Api", "Web"]).run()

        archives = [call.args[2] for call in self.executor.calls_for("tar")]
        self.assertTrue(all(a.endswith(f"_{RUN_DATE}.tar.gz") for a in archives))

    def test_filenames_sanitized_before_archiving(self):
        self.executor.handlers["git clone"] = fake_clone({"notes.txt ": b"n", "ok.txt": b"o"})
        seen = {}

        def inspect_tar(args):
            root = Path(args[args.index("-C") + 1]) / args[-1]
            seen["files"] = sorted(p.name for p in root.iterdir() if p.is_file())
            return fake_tar(args)

        self.executor.handlers["tar"] = inspect_tar

        summary = self.make_pipeline(["Api"]).run()

        self.assertEqual(seen["files"], ["notes.txt", "ok.txt"])
        self.assertEqual(summary.results[0].renamed_files, 1)
        self.assertTrue(any("Renamed" in line for line in self.lines))

    def test_existing_clone_directory_replaced(self):
        stale = self.work_dir / "Api" / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("left over")

        summary = self.make_pipeline(["Api"]).run()

        self.assertEqual(summary.exit_code, EXIT_OK)
        self.assertFalse(stale.exists())

    def test_completion_banner(self):
        self.make_pipeline(["Api"]).run()

        self.assertIn("BACKUP COMPLETE", self.lines)
        self.assertTrue(any(line.startswith("Processing repository 1/1: Api") for line in self.lines))

    def test_empty_project(self):
        summary = self.make_pipeline([]).run()

        self.assertEqual(summary.exit_code, EXIT_OK)
        self.assertEqual(self.executor.calls, [])

    def test_summary_saved(self):
        summary = self.make_pipeline(["Api"]).run()
        path = self.tmpdir / "out" / "summary.json"

        summary.save(path)

        data = json.loads(path.read_text())
        self.assertEqual(data["succeeded"], 1)
        self.assertEqual(data["results"][0]["stage"], "cleaned")
        self.assertEqual(data["results"][0]["container"], "api")


class TestFailures(PipelineTestCase):
    """Tests for failure handling."""

    def test_clone_failure_aborts_run(self):
        """A clone failure at k processes 1..k-1 and never attempts k+1..N."""
        names = ["One", "Two", "Three", "Four"]
        clone = fake_clone()

        def clone_or_fail(args):
            if args[-1].endswith("Three"):
                return CommandResult(args=args, returncode=128, stderr="fatal: repository not found")
            return clone(args)

        self.executor.handlers["git clone"] = clone_or_fail

        with self.assertLogs("repo_backup.core.pipeline", level="ERROR") as logs:
            summary = self.make_pipeline(names).run()

        self.assertTrue(summary.aborted)
        self.assertEqual(summary.exit_code, EXIT_FATAL)
        self.assertEqual(self.cloned_names(), ["One", "Two", "Three"])
        self.assertEqual(len(summary.results), 3)
        self.assertEqual([r.stage for r in summary.results[:2]], [RepositoryStage.CLEANED] * 2)
        self.assertEqual(summary.results[2].stage, RepositoryStage.FAILED)
        self.assertEqual(summary.results[2].failed_stage, RepositoryStage.CLONING)
        self.assertTrue(any("Clone failed for Three" in line for line in logs.output))

        containers = [c.args[c.args.index("--name") + 1] for c in self.executor.calls_for("az container create")]
        self.assertNotIn("four", containers)

    def test_listing_failure_propagates(self):
        client = mock.Mock()
        client.list_repositories.side_effect = ListingError("HTTP 401")
        pipeline = BackupPipeline(self.config, executor=self.executor, client=client, echo=self.lines.append)

        with self.assertRaises(ListingError):
            pipeline.run()

        self.assertEqual(self.executor.calls, [])

    def test_container_failure_is_not_fatal(self):
        self.executor.handlers["az container create"] = failing(1, "AuthorizationFailure")

        with self.assertLogs("repo_backup.core.pipeline", level="WARNING"):
            summary = self.make_pipeline(["Api"]).run()

        self.assertEqual(summary.exit_code, EXIT_OK)
        self.assertFalse(summary.results[0].container_ready)

    def test_upload_failure_keeps_artifacts(self):
        """With the default policy a failed upload keeps local files and continues."""
        def upload_or_fail(args):
            if args[args.index("--container-name") + 1] == "api":
                return CommandResult(args=args, returncode=1, stderr="network unreachable")
            return CommandResult(args=args, returncode=0)

        self.executor.handlers["az blob upload"] = upload_or_fail

        summary = self.make_pipeline(["Api", "Web"]).run()

        self.assertFalse(summary.aborted)
        self.assertEqual(summary.exit_code, EXIT_UPLOADS_FAILED)
        failed = summary.results[0]
        self.assertEqual(failed.stage, RepositoryStage.FAILED)
        self.assertEqual(failed.failed_stage, RepositoryStage.ARCHIVED)
        self.assertTrue((self.work_dir / "Api").exists())
        self.assertTrue(Path(failed.archive).exists())
        self.assertEqual(summary.results[1].stage, RepositoryStage.CLEANED)
        self.assertFalse((self.work_dir / "Web").exists())

    def test_upload_failure_abort_policy(self):
        self.config.on_upload_failure = "abort"
        self.executor.handlers["az blob upload"] = failing(1, "network unreachable")

        summary = self.make_pipeline(["Api", "Web"]).run()

        self.assertTrue(summary.aborted)
        self.assertEqual(summary.exit_code, EXIT_FATAL)
        self.assertEqual(self.cloned_names(), ["Api"])
        self.assertTrue(Path(summary.results[0].archive).exists())

    def test_archive_failure_aborts_run(self):
        self.executor.handlers["tar"] = failing(2, "tar: write error")

        summary = self.make_pipeline(["Api", "Web"]).run()

        self.assertTrue(summary.aborted)
        self.assertEqual(self.cloned_names(), ["Api"])
        self.assertEqual(summary.results[0].failed_stage, RepositoryStage.SANITIZED)


class TestContainerCollisions(PipelineTestCase):
    """Tests for repositories sharing a container name."""

    def test_find_collisions(self):
        repositories = make_client(["My-Repo", "MyRepo", "Other"]).list_repositories()

        self.assertEqual(find_container_collisions(repositories), {"myrepo": ["My-Repo", "MyRepo"]})

    def test_collision_logged(self):
        with self.assertLogs("repo_backup.core.pipeline", level="WARNING") as logs:
            summary = self.make_pipeline(["My-Repo", "MyRepo"]).run()

        self.assertEqual(summary.exit_code, EXIT_OK)
        self.assertTrue(any("share container 'myrepo'" in line for line in logs.output))


if __name__ == "__main__":
    unittest.main()
