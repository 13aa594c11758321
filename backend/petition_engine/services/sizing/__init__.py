"""Sizing - per-section and global word budgets, layout estimation and auto-fix"""
from .engine import (
    SizingEngine, compress_to_budget, count_words, merge_short_paragraphs,
    split_paragraph_at_middle, split_paragraphs, split_sentences, join_paragraphs,
)
from .layout import LayoutValidator

__all__ = [
    "SizingEngine", "LayoutValidator", "compress_to_budget", "count_words",
    "merge_short_paragraphs", "split_paragraph_at_middle", "split_paragraphs",
    "split_sentences", "join_paragraphs",
]
