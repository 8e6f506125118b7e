"""
Unit tests for ResourceGroupStore.
"""

import threading

from rebalanser.store import (
    AssignmentStatus,
    GetResourcesResponse,
    ResourceGroupStore,
    SetResourcesRequest,
)


class TestResourceGroupStore:
    """Tests for ResourceGroupStore."""

    def test_starts_with_no_assignment(self, store: ResourceGroupStore):
        response = store.get_resources()
        assert response == GetResourcesResponse(
            assignment_status=AssignmentStatus.NO_ASSIGNMENT_YET, resources=[]
        )

    def test_replace_resources(self, store: ResourceGroupStore):
        store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, ["r1", "r2"])
        response = store.get_resources()
        assert response.assignment_status is AssignmentStatus.RESOURCES_ASSIGNED
        assert response.resources == ["r1", "r2"]

    def test_replace_discards_previous_set(self, store: ResourceGroupStore):
        store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, ["r1", "r2"])
        store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, ["r3"])
        assert store.get_resources().resources == ["r3"]

    def test_set_resources_request(self, store: ResourceGroupStore):
        store.set_resources(
            SetResourcesRequest(
                assignment_status=AssignmentStatus.NO_RESOURCES_ASSIGNED, resources=()
            )
        )
        assert store.assignment_status is AssignmentStatus.NO_RESOURCES_ASSIGNED
        assert store.get_resources().resources == []

    def test_reads_are_copies(self, store: ResourceGroupStore):
        resources = ["r1"]
        store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, resources)
        resources.append("r2")
        store.get_resources().resources.append("r3")
        assert store.get_resources().resources == ["r1"]

    def test_readers_never_see_partial_sets(self, store: ResourceGroupStore):
        """Concurrent readers only ever see one of the complete sets written."""
        sets = [[f"a{i}" for i in range(50)], [f"b{i}" for i in range(50)]]
        seen_bad: list[list[str]] = []
        done = threading.Event()

        def reader() -> None:
            while not done.is_set():
                current = store.get_resources().resources
                if current and current not in sets:
                    seen_bad.append(current)

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        for i in range(500):
            store.replace_resources(AssignmentStatus.RESOURCES_ASSIGNED, sets[i % 2])
        done.set()
        for thread in threads:
            thread.join()

        assert seen_bad == []
