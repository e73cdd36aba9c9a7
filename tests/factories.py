"""Builders for raw status-endpoint payloads used across the test suite."""

from deepwiki_mcp.core.automation.models import ApiQuery


def chunk(text):
    return {"type": "chunk", "data": text}


def citation(file_path, start=None, end=None):
    data = {"file_path": file_path}
    if start is not None:
        data["range_start"] = start
    if end is not None:
        data["range_end"] = end
    return {"type": "reference", "data": data}


def stat(key, value):
    return {"type": "stats", "data": {"key": key, "value": value}}


def capture(repo, path, content):
    return {"type": "file_contents", "data": [repo, path, content]}


def make_query(response=None, *, state="done", user_query="How does it work?", error=None, repo_ids=None):
    return {
        "user_query": user_query,
        "use_knowledge": False,
        "engine_id": "multihop",
        "repo_context_ids": repo_ids if repo_ids is not None else ["github/a/b"],
        "response": response or [],
        "error": error,
        "state": state,
        "redis_stream": None,
    }


def api_queries(*raw):
    return [ApiQuery.model_validate(item) for item in raw]
