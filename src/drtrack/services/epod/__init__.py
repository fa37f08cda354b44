"""Proof-of-delivery helpers."""

from .completion import CompletionWorkflow, build_proof, encode_signature

__all__ = ["CompletionWorkflow", "build_proof", "encode_signature"]
