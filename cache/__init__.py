# Cache module - Content keys and file-backed artifact store
# Keys are derived from command signatures; nothing tracks "what changed"

from .keys import CacheKeyGenerator, registry_mutation_token, sanitize_name
from .store import FileStore

__all__ = [
    "CacheKeyGenerator",
    "FileStore",
    "registry_mutation_token",
    "sanitize_name",
]
