"""Wiring of the aggregator, suggestion finder and batch linking."""

from src.engine.topic_links import TopicLinkEngine


__all__ = ["TopicLinkEngine"]
