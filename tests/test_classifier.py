"""
Tests for execution/case_research/classifier.py

Covers: signal counting and every classification rule, including the
one-signal precedence that makes the long-query rule unreachable.
"""

import pytest


class TestCountSignals:

    def test_no_signals(self):
        from execution.case_research.classifier import count_signals
        assert count_signals("When was the ESA passed?") == 0

    def test_case_insensitive(self):
        from execution.case_research.classifier import count_signals
        assert count_signals("JUST CAUSE") == 1

    def test_repeated_signal_counts_once(self):
        from execution.case_research.classifier import count_signals
        assert count_signals("precedent precedent precedent") == 1

    def test_distinct_signals(self):
        from execution.case_research.classifier import count_signals
        assert count_signals("What strategy limits our liability?") == 2


class TestClassifyQuery:

    def test_short_plain_query_is_simple(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        assert classify_query("What is the ESA?") == ComplexityLevel.SIMPLE

    def test_empty_query_is_simple(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        assert classify_query("") == ComplexityLevel.SIMPLE

    def test_two_signals_is_deep(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        assert classify_query("Analyze our liability") == ComplexityLevel.DEEP

    def test_one_signal_long_query_is_deep(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        query = ("My client worked at the plant for twelve years and was let go "
                 "last month; was there just cause in her file at all?")
        assert len(query.split()) > 15
        assert classify_query(query) == ComplexityLevel.DEEP

    def test_one_signal_short_query_is_moderate(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        assert classify_query("Define just cause") == ComplexityLevel.MODERATE

    def test_reasonable_notice_scenario(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        query = "What is the reasonable notice period for a 10-year employee?"
        assert classify_query(query) == ComplexityLevel.MODERATE

    def test_long_plain_query_is_moderate(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        query = " ".join(["word"] * 31)
        assert classify_query(query) == ComplexityLevel.MODERATE

    def test_medium_plain_query_is_simple(self):
        from execution.case_research.classifier import classify_query, ComplexityLevel
        query = "Please list every document we received from the employer last week"
        assert 8 <= len(query.split()) <= 30
        assert classify_query(query) == ComplexityLevel.SIMPLE

    def test_known_quirk_one_signal_never_reaches_long_query_rule(self):
        """A one-signal query of 8-15 words is moderate, never simple or deep."""
        from execution.case_research.classifier import classify_query, ComplexityLevel
        query = "Can you tell me about the precedent for this situation"
        assert 8 <= len(query.split()) <= 15
        assert classify_query(query) == ComplexityLevel.MODERATE

    @pytest.mark.parametrize("query", [
        "What is the reasonable notice period for a 10-year employee?",
        "Analyze the risks",
        "hello",
    ])
    def test_deterministic(self, query):
        from execution.case_research.classifier import classify_query
        assert len({classify_query(query) for _ in range(5)}) == 1
