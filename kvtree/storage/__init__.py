"""Store clients for the key tree."""

from kvtree.storage.etcd import EtcdKeysClient
from kvtree.storage.memory import InMemoryStore
from kvtree.storage.protocol import KeysAPI

__all__ = ['EtcdKeysClient', 'InMemoryStore', 'KeysAPI']
