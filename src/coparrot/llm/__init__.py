"""
Language model integration for coparrot.

This package contains the prompt builders in :mod:`coparrot.llm.prompts`
and one :class:`LLMProvider` per supported vendor in
:mod:`coparrot.llm.providers`.
"""

from .prompts import GenerationKind, build_system_prompt  # noqa: F401
from .providers import LLMError, LLMProvider, create_provider  # noqa: F401
