from pathlib import Path

import pytest

from provenant.exceptions import ConcurrentModificationError, DuplicateNameError
from provenant.registry import Registry, load, save, update_registry
from provenant.utils import ExponentialBackoff
from tests.conftest import AddArtifact, ProvenantProject


class _Sleeps:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _competing_save(path: Path, root: Path, add_artifact: AddArtifact, name: str) -> None:
    rival = load(path, root=root)
    save(add_artifact(rival, name), path)


class TestUpdateRegistry:
    def test_creates_registry_on_first_use(
        self, project: ProvenantProject, add_artifact: AddArtifact
    ) -> None:
        saved = update_registry(
            project.registry_path,
            lambda r: add_artifact(r, "raw"),
            root=project.root,
        )

        assert saved.revision == 1
        assert load(project.registry_path, root=project.root).names == ("raw",)

    def test_retries_after_conflict(
        self, project: ProvenantProject, add_artifact: AddArtifact
    ) -> None:
        sleeps = _Sleeps()
        attempts: list[int] = []

        def mutate(registry: Registry) -> Registry:
            attempts.append(registry.revision)
            if len(attempts) == 1:
                _competing_save(project.registry_path, project.root, add_artifact, "rival")
            return add_artifact(registry, "mine")

        saved = update_registry(
            project.registry_path,
            mutate,
            root=project.root,
            backoff=ExponentialBackoff(jitter=0.0),
            sleep=sleeps,
        )

        assert attempts == [0, 1]
        assert sleeps.calls == [0.05]
        assert saved.names == ("rival", "mine")
        assert saved.revision == 2

    def test_gives_up_after_max_attempts(
        self, project: ProvenantProject, add_artifact: AddArtifact
    ) -> None:
        sleeps = _Sleeps()
        counter = iter(range(100))

        def mutate(registry: Registry) -> Registry:
            _competing_save(
                project.registry_path, project.root, add_artifact, f"rival_{next(counter)}"
            )
            return add_artifact(registry, "mine")

        with pytest.raises(ConcurrentModificationError):
            update_registry(
                project.registry_path,
                mutate,
                root=project.root,
                max_attempts=3,
                backoff=ExponentialBackoff(jitter=0.0),
                sleep=sleeps,
            )

        assert sleeps.calls == [0.05, 0.1]
        assert "mine" not in load(project.registry_path, root=project.root)

    def test_single_attempt_does_not_sleep(
        self, project: ProvenantProject, add_artifact: AddArtifact
    ) -> None:
        sleeps = _Sleeps()

        def mutate(registry: Registry) -> Registry:
            _competing_save(project.registry_path, project.root, add_artifact, "rival")
            return add_artifact(registry, "mine")

        with pytest.raises(ConcurrentModificationError):
            update_registry(
                project.registry_path,
                mutate,
                root=project.root,
                max_attempts=1,
                sleep=sleeps,
            )

        assert sleeps.calls == []

    def test_registry_errors_are_not_retried(
        self, project: ProvenantProject, add_artifact: AddArtifact
    ) -> None:
        update_registry(
            project.registry_path, lambda r: add_artifact(r, "raw"), root=project.root
        )
        calls: list[int] = []

        def mutate(registry: Registry) -> Registry:
            calls.append(1)
            return add_artifact(registry, "raw")

        with pytest.raises(DuplicateNameError):
            update_registry(project.registry_path, mutate, root=project.root)

        assert calls == [1]

    def test_rejects_zero_attempts(self, project: ProvenantProject) -> None:
        with pytest.raises(ValueError, match="at least 1"):
            update_registry(project.registry_path, lambda r: r, max_attempts=0)
