"""Branch classification, pattern matching and policy resolution."""

from __future__ import annotations

from branchline.branching.classifier import (
    BranchClassifier,
    classify_type,
    compute_docker_tag,
    normalize_branch_name,
    resolve_policy,
)
from branchline.branching.patterns import BranchPattern, compile_pattern
from branchline.branching.policies import BranchPolicyTable, builtin_policies
from branchline.branching.scm import EnvironMetadataSource, SourceControl

__all__ = [
    "BranchClassifier",
    "BranchPattern",
    "BranchPolicyTable",
    "EnvironMetadataSource",
    "SourceControl",
    "builtin_policies",
    "classify_type",
    "compile_pattern",
    "compute_docker_tag",
    "normalize_branch_name",
    "resolve_policy",
]
