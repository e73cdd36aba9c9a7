"""Normalized document model produced by the assembler and consumed by the renderer."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class AnswerSegment(BaseModel):
    """A run of answer prose, optionally closed by a citation."""

    text: str = Field(..., description="Answer prose")
    reference: Optional[str] = Field(None, description="Citation key, e.g. 'owner/name: path:10-12'")


class ConversationTurn(BaseModel):
    user_query: str = Field(..., description="Question asked in this turn")
    answer_segments: List[AnswerSegment] = Field(default_factory=list)


class ReferencedFile(BaseModel):
    reference_range: str = Field(..., description="Cited range as 'start-end'")
    reference_material: str = Field("", description="Lines extracted from the captured file")


class ContextFile(BaseModel):
    file_name: str = Field(..., description="Repository-qualified path")
    text: str = Field("", description="Full captured content")

    @property
    def lines(self) -> List[str]:
        return self.text.split("\n")


class NormalizedDocument(BaseModel):
    """A whole conversation with resolved citations, ready for rendering."""

    query_id: str
    conversation: List[ConversationTurn] = Field(default_factory=list)
    repo_context_ids: List[str] = Field(default_factory=list)
    referenced_files: Dict[str, List[ReferencedFile]] = Field(default_factory=dict)
    full_context: List[ContextFile] = Field(default_factory=list)

    def reference_keys(self) -> List[str]:
        """Distinct citation keys in first-seen order across all turns."""
        seen: Dict[str, None] = {}
        for turn in self.conversation:
            for segment in turn.answer_segments:
                if segment.reference and segment.reference not in seen:
                    seen[segment.reference] = None
        return list(seen)
