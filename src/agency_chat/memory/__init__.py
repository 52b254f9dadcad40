"""Conversation history capping and summarization."""

from .history import SUMMARY_ACK, HistoryCompressor, summary_turns

__all__ = ["SUMMARY_ACK", "HistoryCompressor", "summary_turns"]
