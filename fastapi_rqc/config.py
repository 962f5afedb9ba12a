"""Configuration classes for fastapi-rqc."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class CompilerConfig:
    """
    Configuration for resource option compilation.

    Attributes:
        strict_mode: If True, raise errors for unknown fields (default: False)
        case_insensitive_patterns: Use ILIKE for ct/sw/ew when True, LIKE otherwise
            (default: True)
        escape_patterns: Escape LIKE wildcards found in ct/sw/ew values (default: True)
        parameter_prefix: Prefix of generated bound parameter names
            (default: "rqc_param_")
        default_limit: Limit applied when the descriptor has none, None for no limit
            (default: None)
        max_limit: Upper bound for the limit, None for unlimited (default: None)
        discover_handlers: Discover filter_*/sort_* methods on the compiler as custom
            handlers (default: True)

    Example:
        config = CompilerConfig(strict_mode=True, max_limit=100, default_limit=20)
        compiler = ResourceOptionCompiler(config=config)
    """

    # Validation settings
    strict_mode: bool = False

    # Operator settings
    case_insensitive_patterns: bool = True
    escape_patterns: bool = True
    parameter_prefix: str = "rqc_param_"

    # Pagination settings
    default_limit: Optional[int] = None
    max_limit: Optional[int] = None

    # Custom handler settings
    discover_handlers: bool = True

    def __post_init__(self):
        """Validate configuration values."""
        if not self.parameter_prefix or not self.parameter_prefix.isidentifier():
            raise ValueError("parameter_prefix must be a valid identifier")
        if self.max_limit is not None and self.max_limit < 1:
            raise ValueError("max_limit must be >= 1 or None")
        if self.default_limit is not None and self.default_limit < 1:
            raise ValueError("default_limit must be >= 1 or None")
        if (
            self.default_limit is not None
            and self.max_limit is not None
            and self.default_limit > self.max_limit
        ):
            raise ValueError("default_limit cannot exceed max_limit")

    def validate_page(self, page: Optional[int]) -> Optional[int]:
        """
        Validate a 1-based page number.

        Args:
            page: Requested page number

        Returns:
            Optional[int]: Page number, 1 for values below 1, None when absent
        """
        if page is None:
            return None
        if page < 1:
            return 1
        return page

    def validate_limit(self, limit: Optional[int]) -> Optional[int]:
        """
        Validate and constrain a row limit.

        Args:
            limit: Requested limit

        Returns:
            Optional[int]: Limit constrained to max_limit, default_limit when absent
        """
        if limit is None:
            return self.default_limit
        if self.max_limit is not None and limit > self.max_limit:
            return self.max_limit
        return limit


class CompilerPresets:
    """Pre-defined CompilerConfig presets for common use cases."""

    @staticmethod
    def default() -> CompilerConfig:
        """Default configuration with sensible defaults."""
        return CompilerConfig()

    @staticmethod
    def strict() -> CompilerConfig:
        """Strict mode configuration - raises errors for unknown fields."""
        return CompilerConfig(strict_mode=True)

    @staticmethod
    def limited(max_limit: int = 100, default_limit: Optional[int] = None) -> CompilerConfig:
        """
        Configuration that caps the number of rows per page.

        Args:
            max_limit: Maximum limit a caller may request
            default_limit: Limit used when the caller sends none (defaults to max_limit)
        """
        return CompilerConfig(
            max_limit=max_limit,
            default_limit=default_limit if default_limit is not None else max_limit,
        )
