import pytest

from manual_sorting.core.services.mutation_service import OrderMutationService
from manual_sorting.core.services.reconciler import OrderReconciler
from manual_sorting.core.services.restore_service import RestoreProjector
from manual_sorting.core.tree import TreeWalker


@pytest.fixture
def mutation_service():
    return OrderMutationService()


@pytest.fixture
def shallow_delete_service():
    # host reports one delete event per descendant
    return OrderMutationService(recursive_delete=False)


@pytest.fixture
def reconciler(tree_host):
    return OrderReconciler(TreeWalker(tree_host))


@pytest.fixture
def projector():
    return RestoreProjector()


@pytest.fixture
def make_doc():
    # Fresh copy per call so tests can mutate freely
    def factory(**extra):
        doc = {
            "/": ["a.md", "b.md", "folder1"],
            "folder1": ["folder1/c.md"],
        }
        doc.update(extra)
        return doc
    return factory
