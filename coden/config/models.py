from pydantic import BaseModel, Field
from typing import Literal


DEFAULT_STOPLIST = [
    "function", "class", "const", "let", "var",
    "return", "if", "else", "for", "while",
    "import", "export", "from", "require",
    "string", "number", "boolean", "object", "array",
    "true", "false", "null", "undefined",
    "def", "self", "None", "True", "False", "pass",
]


class ImportanceConfig(BaseModel):
    """Fixed importance prior per structural element kind."""

    function: float = Field(default=0.8, ge=0, le=1)
    class_: float = Field(default=0.9, ge=0, le=1, alias="class")
    import_: float = Field(default=0.5, ge=0, le=1, alias="import")
    variable: float = Field(default=0.6, ge=0, le=1)
    other: float = Field(default=0.3, ge=0, le=1)

    model_config = {"populate_by_name": True}

    def for_kind(self, kind: str) -> float:
        return {
            "function": self.function,
            "class": self.class_,
            "import": self.import_,
            "variable": self.variable,
        }.get(kind, self.other)


class FingerprintConfig(BaseModel):
    importance: ImportanceConfig = Field(default_factory=ImportanceConfig)
    min_identifier_length: int = Field(default=3, ge=1)
    min_call_name_length: int = Field(default=3, ge=1)
    stoplist: list[str] = Field(default_factory=lambda: list(DEFAULT_STOPLIST))


class EvaluatorConfig(BaseModel):
    structural_weight: float = Field(default=0.5, ge=0)
    identifier_weight: float = Field(default=0.3, ge=0)
    pattern_weight: float = Field(default=0.2, ge=0)
    complexity_base: float = Field(default=0.3, ge=0, le=1)
    complexity_per_line: float = Field(default=0.05, ge=0)
    base_threshold: float = Field(default=0.3, ge=0, le=1)
    single_line_threshold: float = Field(default=0.5, ge=0, le=1)
    large_block_threshold: float = Field(default=0.2, ge=0, le=1)
    large_block_lines: int = Field(default=10, gt=1)
    structure_adjustment: float = Field(default=0.1, ge=0)
    rich_structure_elements: int = Field(default=3, gt=0)
    min_threshold: float = Field(default=0.1, ge=0, le=1)
    max_threshold: float = Field(default=0.7, ge=0, le=1)
    modification_margin: float = Field(default=0.2, ge=0)


class TrackerConfig(BaseModel):
    short_statement_chars: int = Field(default=30, gt=0)
    token_overlap_threshold: float = Field(default=0.6, ge=0, le=1)
    # line similarity
    line_similarity_confidence: float = Field(default=0.7, gt=0, le=1)
    tiny_line_chars: int = Field(default=10, gt=0)
    small_line_chars: int = Field(default=20, gt=0)
    tiny_line_similarity: float = Field(default=0.8, ge=0, le=1)
    small_line_similarity: float = Field(default=0.7, ge=0, le=1)
    line_similarity: float = Field(default=0.6, ge=0, le=1)
    survival_base: float = Field(default=0.05, ge=0, le=1)
    survival_per_complexity: float = Field(default=0.01, ge=0)
    survival_chars_per_unit: int = Field(default=50, gt=0)
    survival_cap: float = Field(default=0.3, ge=0, le=1)
    # semantic anchors
    anchor_short_confidence: float = Field(default=0.85, gt=0, le=1)
    anchor_confidence: float = Field(default=0.8, gt=0, le=1)
    anchor_short_deletion: float = Field(default=0.1, ge=0, le=1)
    anchor_deletion: float = Field(default=0.2, ge=0, le=1)
    anchor_min_identifier_length: int = Field(default=6, gt=0)
    # snapshot diff
    snapshot_short_confidence: float = Field(default=0.85, gt=0, le=1)
    snapshot_confidence: float = Field(default=0.9, gt=0, le=1)
    snapshot_length_tolerance: float = Field(default=0.01, ge=0)
    # import specific
    import_confidence: float = Field(default=0.95, gt=0, le=1)
    # fusion
    modification_bar: float = Field(default=0.5, ge=0, le=1)
    deletion_bar: float = Field(default=0.5, ge=0, le=1)
    import_deletion_bar: float = Field(default=0.7, ge=0, le=1)


class LedgerConfig(BaseModel):
    fast_delete_window_seconds: float = Field(default=10.0, ge=0)
    validation_interval_seconds: float = Field(default=30.0, gt=0)
    token_overlap_threshold: float = Field(default=0.6, ge=0, le=1)


class StorageConfig(BaseModel):
    base_dir: str = ".coden"
    suggestion_log: str = "suggestions.json"
    modification_log: str = "modifications.json"


class IntegrationConfig(BaseModel):
    auto_detect: bool = True
    recently_opened_seconds: float = Field(default=1.0, ge=0)
    min_insert_chars: int = Field(default=4, gt=0)
    max_context_chars: int = Field(default=200, gt=0)
    context_lines: int = Field(default=3, ge=0)
    ignored_uri_fragments: list[str] = Field(
        default_factory=lambda: ["output:", "extension-output", "GitHub.copilot"]
    )
    ignore_patterns: list[str] = Field(default_factory=lambda: [
        ".git", "node_modules", "__pycache__", ".venv", "build", "dist", ".coden"
    ])
    debounce_seconds: float = Field(default=2.0, ge=0)


class CodenConfig(BaseModel):
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    integration: IntegrationConfig = Field(default_factory=IntegrationConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
