"""Prompt templates sent to reasoning backends."""

from __future__ import annotations

from typing import Final

from ..models.backend import ReviewContext

SYSTEM_PROMPT: Final[str] = (
    "You are a professional writing editor. "
    "Always respond with a single valid JSON object and nothing else."
)

_REVIEW_SCHEMA: Final[str] = """{
  "overall": "Overall assessment",
  "strengths": ["List of strengths"],
  "improvements": ["List of areas for improvement"],
  "rating": 0-10,
  "suggestions": [
    {
      "type": "grammar|style|structure|content|clarity",
      "line": number,
      "startLine": number,
      "startColumn": number,
      "endLine": number,
      "endColumn": number,
      "original": "original text",
      "suggested": "suggested replacement",
      "reason": "explanation",
      "confidence": 0.0-1.0
    }
  ]
}"""

_DIFF_SCHEMA: Final[str] = """{
  "summary": "Brief summary of changes",
  "semanticChanges": [
    {
      "type": "addition|deletion|modification",
      "description": "Description of the change",
      "lineNumber": number,
      "confidence": 0.0-1.0
    }
  ],
  "consistencyReport": {
    "score": 0-100,
    "issues": ["List of consistency issues"],
    "suggestions": ["List of suggestions for improvement"]
  }
}"""


def build_review_prompt(text: str, context: ReviewContext | None = None) -> str:
    lines = ["Review the following text and provide detailed feedback."]
    if context is not None:
        lines.append(f"Document Type: {context.document_type}")
        lines.append(f"Writing Style: {context.writing_style}")
        if context.target_audience:
            lines.append(f"Target Audience: {context.target_audience}")
    lines.extend(
        [
            "",
            "Text to Review:",
            "```",
            text,
            "```",
            "",
            "Provide your review in JSON format with the following structure:",
            _REVIEW_SCHEMA,
            "",
            "Line and column numbers are zero-based; endColumn is exclusive. "
            "The original field must match the text at that range exactly.",
            "Review grammar, clarity, style consistency, structure, and content quality.",
            "Respond ONLY with valid JSON.",
        ]
    )
    return "\n".join(lines)


def build_diff_prompt(diff_text: str, context: ReviewContext | None = None) -> str:
    lines = ["Analyze the following git diff of a document."]
    if context is not None:
        lines.append(f"Document Type: {context.document_type}")
        lines.append(f"File Path: {context.file_path or 'unknown'}")
    lines.extend(
        [
            "",
            "Git Diff:",
            "```",
            diff_text,
            "```",
            "",
            "Provide your analysis in JSON format with the following structure:",
            _DIFF_SCHEMA,
            "",
            "Focus on semantic meaning changes, structure, tone, and consistency.",
            "Respond ONLY with valid JSON.",
        ]
    )
    return "\n".join(lines)


__all__ = ["SYSTEM_PROMPT", "build_diff_prompt", "build_review_prompt"]
