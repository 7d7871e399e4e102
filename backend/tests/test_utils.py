from nodescout.utils import (docs_tokens, normalize_query, tag_match_score, token_match_score,
                             tokenize_query)


def test_normalize_query_strips_filler_words():
    assert normalize_query("  How to   send SLACK messages ") == "send slack messages"
    assert normalize_query("node for google sheets using oauth") == "node google sheets oauth"


def test_normalize_query_filler_is_whole_word_only():
    # "format" contains "for", "user" contains "use"
    assert normalize_query("format user") == "format user"


def test_normalize_query_falls_back_when_everything_is_filler():
    assert normalize_query("How   to USE") == "how to use"
    assert normalize_query("   ") == ""


def test_tokenize_query():
    assert tokenize_query("http  request") == ["http", "request"]
    assert tokenize_query("") == []
    assert docs_tokens("  HTTP Request ") == ["http", "request"]


def test_token_and_tag_scores():
    assert token_match_score("Make HTTP requests", ["http", "request"]) == 1.0
    assert token_match_score("httpx", ["http", "request"]) == 0.5
    assert token_match_score(None, ["http"]) == 0.0
    assert token_match_score("anything", []) == 0.0
    assert tag_match_score(["N8N-Nodes"], ["nodes", "slack"]) == 0.5
    assert tag_match_score([], ["nodes"]) == 0.0
