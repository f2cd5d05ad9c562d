"""Async LLM client used by the tagging and SQL generation oracles.

Usage:
    from yonk_sql_architect.llm import call_llm, call_llm_json

    text = await call_llm("Write a query that ...", system="You are a MySQL architect.")
    suggestions = await call_llm_json("Return JSON: ...")
"""
from .client import (
    set_llm_config,
    get_llm_config,
    call_llm,
    call_llm_json,
    parse_json_response,
)

__all__ = [
    "set_llm_config",
    "get_llm_config",
    "call_llm",
    "call_llm_json",
    "parse_json_response",
]
