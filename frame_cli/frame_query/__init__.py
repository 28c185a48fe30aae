"""Public exports for the frame-query package."""

from .assembler import assemble_frames, extract_single_column
from .executor import build_query_text, run_queries, run_query
from .legend import expand_legend
from .macros import expand_macros, promql_to_sql
from .rangevector import decode_range_vector
from .spec import decode_query_spec
from .timestamps import parse_epoch, parse_instant

__all__ = [
    "assemble_frames",
    "build_query_text",
    "decode_query_spec",
    "decode_range_vector",
    "expand_legend",
    "expand_macros",
    "extract_single_column",
    "parse_epoch",
    "parse_instant",
    "promql_to_sql",
    "run_queries",
    "run_query",
]
