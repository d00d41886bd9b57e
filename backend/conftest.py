import os
import sys

import pytest

# Directorio backend/lambdas: cada lambda y "shared" se importan como paquetes
backend_dir = os.path.dirname(__file__)
lambdas_dir = os.path.join(backend_dir, 'lambdas')
if lambdas_dir not in sys.path:
    sys.path.insert(0, lambdas_dir)

os.environ.setdefault('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture(scope='function', autouse=True)
def setup_aws_mock(monkeypatch):
    """Setup fake AWS credentials para todos los tests"""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')
    yield


class MemoryStore:
    """In-memory stand-in for TopologyStore, nested dicts addressed by path."""

    def __init__(self, data=None):
        self.data = data or {}
        self.calls = []

    @staticmethod
    def _segments(path):
        return [s for s in path.strip('/').split('/') if s]

    def read(self, path):
        self.calls.append(('read', path))
        node = self.data
        for segment in self._segments(path):
            if not isinstance(node, dict) or segment not in node:
                return None
            node = node[segment]
        return node

    def _parent(self, path):
        *parents, leaf = self._segments(path)
        node = self.data
        for segment in parents:
            node = node.setdefault(segment, {})
        return node, leaf

    def set(self, path, value):
        self.calls.append(('set', path))
        parent, leaf = self._parent(path)
        parent[leaf] = value

    def remove(self, path):
        self.calls.append(('remove', path))
        parent, leaf = self._parent(path)
        parent.pop(leaf, None)

    def update(self, path, values):
        self.calls.append(('update', path))
        parent, leaf = self._parent(path)
        parent.setdefault(leaf, {}).update(values)


class FailingStore(MemoryStore):
    def read(self, path):
        raise RuntimeError('store unavailable')


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def failing_store():
    return FailingStore()
