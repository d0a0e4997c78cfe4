"""Prompt templates for directives, free-form questions and the audit."""

from __future__ import annotations

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field

from mathplus.types import Directive, DirectiveKind

MATH_DELIMITER_RULE = (
    "Always write LaTeX formulas only as $...$ (inline) or $$...$$ (display). "
    "Do not use \\( \\) or \\[ \\]."
)

_MATH_TEMPLATE = (
    "Give a mathematical formula in LaTeX format (wrapped in $$...$$) for: {content}. "
    "Return only the LaTeX formula, without any additional explanation."
)
_WOLFRAM_TEMPLATE = (
    "Write Wolfram Language code for: {content}. "
    "Return only the code, without any additional explanation."
)
_EXPLAIN_TEMPLATE = (
    "Explain in a simple way: {content}. Use plain language. " + MATH_DELIMITER_RULE
)

ASK_PROMPT = PromptTemplate.from_template("{question}\n\n" + MATH_DELIMITER_RULE)

AUDIT_PROMPT = PromptTemplate.from_template(
    "\n".join(
        [
            "Analyze the notebook content only for correctness of the Wolfram Language code and the Wolfram-style mathematics.",
            "Ignore language, style and organisational issues.",
            "Return the result as JSON with no additional text.",
            "JSON schema:",
            "{{",
            '  "errors": [',
            "    {{",
            '      "error": "short description of the error",',
            '      "current": "what is there now",',
            '      "fix": "how to fix it",',
            '      "explanation": "why it is an error"',
            "    }}",
            "  ]",
            "}}",
            'If there are no errors, return {{"errors": []}}.',
            "",
            "Notebook:",
            "{notebook}",
        ]
    )
)


class PromptSpec(BaseModel):
    """Fixed prompt template bound to one directive kind."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: DirectiveKind
    template: PromptTemplate
    description: str = ""
    tags: list[str] = Field(default_factory=list)

    def build(self, content: str) -> str:
        return self.template.format(content=content)


class PromptRegistry:
    """Maps directive kinds to their prompt templates."""

    def __init__(self) -> None:
        self._specs: dict[DirectiveKind, PromptSpec] = {}

    def register(self, spec: PromptSpec) -> None:
        if spec.kind in self._specs:
            raise ValueError(f"Prompt already registered: {spec.kind.value}")
        self._specs[spec.kind] = spec

    def get(self, kind: DirectiveKind) -> PromptSpec:
        spec = self._specs.get(kind)
        if spec is None:
            raise KeyError(f"No prompt registered for directive: {kind.value}")
        return spec

    def build(self, directive: Directive) -> str:
        return self.get(directive.kind).build(directive.content)

    def specs(self) -> list[PromptSpec]:
        return list(self._specs.values())


def default_prompt_registry() -> PromptRegistry:
    """Registry with the three built-in directive prompts."""

    registry = PromptRegistry()
    registry.register(
        PromptSpec(
            kind=DirectiveKind.MATH,
            template=PromptTemplate.from_template(_MATH_TEMPLATE),
            description="Single LaTeX formula.",
            tags=["latex"],
        )
    )
    registry.register(
        PromptSpec(
            kind=DirectiveKind.WOLFRAM,
            template=PromptTemplate.from_template(_WOLFRAM_TEMPLATE),
            description="Wolfram Language source only.",
            tags=["code"],
        )
    )
    registry.register(
        PromptSpec(
            kind=DirectiveKind.EXPLAIN,
            template=PromptTemplate.from_template(_EXPLAIN_TEMPLATE),
            description="Plain-language explanation with strict math delimiters.",
            tags=["prose", "latex"],
        )
    )
    return registry


def build_ask_prompt(question: str) -> str:
    return ASK_PROMPT.format(question=question)


def build_audit_prompt(notebook_text: str) -> str:
    return AUDIT_PROMPT.format(notebook=notebook_text)
