"""Chain specific configuration used to build a ``fire<chain>`` tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from firecore.blockpoller.model import Block

SanitizeBlockForCompare = Callable[[Block], Block]


class ChainValidationError(ValueError):
    """Raised when a :class:`Chain` holds invalid values; lists every problem found."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"- {error}" for error in self.errors)
        super().__init__(f"firecore.Chain is invalid:\n{lines}")


@dataclass
class TransformFlags:
    """Chain specific transform flags for the Firehose client like tools.

    ``register`` receives the command's flag set and registers the flags,
    ``parse`` receives the command and a logger and returns the transforms.
    """

    register: Callable[..., None] | None = None
    parse: Callable[..., list[Any]] | None = None


@dataclass
class ToolsConfig:
    """Options used by the ``fire<chain> tools`` commands."""

    sanitize_block_for_compare: SanitizeBlockForCompare | None = None
    register_extra_cmd: Callable[..., None] | None = None
    transform_flags: TransformFlags | None = None
    merged_block_upgrader: Callable[[Block], Block] | None = None

    def sanitizer(self) -> SanitizeBlockForCompare:
        """The configured sanitizer, or one that returns the block unchanged."""
        if self.sanitize_block_for_compare is None:
            return lambda block: block
        return self.sanitize_block_for_compare


@dataclass
class Chain:
    """Everything a ``fire<chain>`` binary needs to know about its chain."""

    short_name: str = ""
    long_name: str = ""
    executable_name: str = ""
    fully_qualified_module: str = ""
    version: str = ""
    first_streamable_block: int = 0
    block_factory: Callable[[], Any] | None = None
    console_reader_factory: Callable[..., Any] | None = None
    block_indexer_factories: dict[str, Any] = field(default_factory=dict)
    block_transformer_factories: dict[str, Any] = field(default_factory=dict)
    register_extra_start_flags: Callable[..., None] | None = None
    reader_node_bootstrapper_factory: Callable[..., Any] | None = None
    tools: ToolsConfig | None = None
    block_encoder: Any = None
    default_block_type: str = ""
    register_substreams_extensions: Callable[[], Any] | None = None
    unsafe_allow_empty_executable_name: bool = False
    build_info: Mapping[str, str] = field(default_factory=dict)

    def validate(self) -> None:
        """Trim the names and raise :class:`ChainValidationError` listing every invalid field."""
        self.short_name = self.short_name.strip().lower()
        self.long_name = self.long_name.strip()
        self.executable_name = self.executable_name.strip()

        errors: list[str] = []
        if not self.short_name:
            errors.append("field 'ShortName' must be non-empty")
        if " " in self.short_name:
            errors.append("field 'ShortName' must not contain any space(s)")
        if not self.long_name:
            errors.append("field 'LongName' must be non-empty")
        if not self.executable_name and not self.unsafe_allow_empty_executable_name:
            errors.append("field 'ExecutableName' must be non-empty")
        if not self.fully_qualified_module:
            errors.append("field 'FullyQualifiedModule' must be non-empty")
        if not self.version:
            errors.append("field 'Version' must be non-empty")
        if self.block_factory is None:
            errors.append("field 'BlockFactory' must be non-nil")
        elif self.block_factory() is None:
            errors.append("field 'BlockFactory' must not produce nil blocks")
        if self.console_reader_factory is None:
            errors.append("field 'ConsoleReaderFactory' must be non-nil")
        if len(self.block_indexer_factories) > 1:
            errors.append("field 'BlockIndexerFactories' must have at most one element")
        errors.extend(
            f"entry {key!r} for field 'BlockIndexerFactories' must be non-nil"
            for key, factory in self.block_indexer_factories.items()
            if factory is None
        )
        errors.extend(
            f"entry {key!r} for field 'BlockTransformerFactories' must be non-nil"
            for key, factory in self.block_transformer_factories.items()
            if factory is None
        )

        if errors:
            raise ChainValidationError(errors)

    def binary_name(self) -> str:
        """``fire`` followed by the lower cased short name."""
        return "fire" + self.short_name.lower()

    def root_logger_package_id(self) -> str:
        return self.logger_package_id(f"cmd/{self.binary_name()}/cli")

    def logger_package_id(self, sub_package: str) -> str:
        return f"{self.fully_qualified_module}/{sub_package}"

    def version_string(self) -> str:
        """The version, followed by commit and build date when the build info has them."""
        commit = self.build_info.get("vcs.revision", "")
        date = self.build_info.get("vcs.time", "")

        labels = []
        if len(commit) >= 7:
            labels.append(f"Commit {commit[:7]}")
        if date:
            labels.append(f"Built {date}")

        if not labels:
            return self.version
        return f"{self.version} ({', '.join(labels)})"