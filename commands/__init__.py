# Commands module - Registry, override layer and tree extraction
# This module does NOT render anything, only builds Command trees
# No filesystem access besides loading YAML definitions

from .context import RequestContext
from .models import Command, NameEntry, Option
from .registry import CommandRegistry, CommandNode, OverrideSnapshot, RegistryAdapter
from .overrides import OverrideResolver, EffectiveData
from .text import LocaleCatalog, flatten_text, effective_text, resolve_locale
from .extractor import CommandExtractor, filter_commands
from .grouping import CommandGroup, group_commands

__all__ = [
    "RequestContext",
    "Command",
    "NameEntry",
    "Option",
    "CommandRegistry",
    "CommandNode",
    "OverrideSnapshot",
    "RegistryAdapter",
    "OverrideResolver",
    "EffectiveData",
    "LocaleCatalog",
    "flatten_text",
    "effective_text",
    "resolve_locale",
    "CommandExtractor",
    "filter_commands",
    "CommandGroup",
    "group_commands",
]
