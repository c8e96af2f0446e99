"""Version-control change signals: the 20% share of intent and risk.

Each signal is a small pure function of the call path (its related changes,
description and method names) and the change context.  ``intent_git_score``
and ``risk_git_score`` sum them under their caps.  A missing or empty
context scores zero.
"""

from __future__ import annotations

from codeweight.models import CallPath, FileChangeType, GitChangeContext
from codeweight.weights._tables import (
    _API_CONTROLLER_SCORE,
    _API_ENDPOINT_SCORE,
    _API_ENDPOINT_TERMS,
    _BUSINESS_TERM_CAP,
    _BUSINESS_TERM_SCORE,
    _BUSINESS_TERMS,
    _COMPONENT_ANNOTATIONS,
    _COMPONENT_SCORE,
    _CONFIG_CHANGE_CAP,
    _CONFIG_CHANGE_PENALTY,
    _CONFIG_CHANGE_SUFFIXES,
    _CONFIG_SUFFIXES,
    _DELETED_FILE_PENALTY,
    _DELETED_LINES,
    _DELETED_LINES_DEFAULT,
    _DELETION_CAP,
    _ENDPOINT_ANNOTATIONS,
    _ENDPOINT_SCORE,
    _GIT_CAP,
    _INTENT_FILE_CAP,
    _INTENT_FILE_DEFAULT,
    _INTENT_FILE_TYPES,
    _INTENT_SIZE_CAP,
    _INTENT_SIZE_FILES,
    _INTENT_SIZE_FILES_DEFAULT,
    _INTENT_SIZE_LINES,
    _INTENT_SIZE_LINES_DEFAULT,
    _NEW_CLASS_SCORE,
    _RISK_CONFIG_FILE,
    _RISK_FILE_CAP,
    _RISK_FILE_DEFAULT,
    _RISK_FILE_TYPES,
    _RISK_SIZE_CAP,
    _RISK_SIZE_FILES,
    _RISK_SIZE_FILES_DEFAULT,
    _RISK_SIZE_LINES,
    _RISK_SIZE_LINES_DEFAULT,
    _SENSITIVE_CAP,
    _SENSITIVE_KEYWORDS,
    _tier,
)


def _added_text(path: CallPath) -> str:
    return " ".join(line for f in path.related_changes for line in f.added_content).lower()


def _path_text(path: CallPath) -> str:
    return f"{path.description} {' '.join(path.methods)}".lower()


def _total_lines(context: GitChangeContext) -> int:
    return context.added_lines + context.deleted_lines


# ---------------------------------------------------------------------------
# Intent signals
# ---------------------------------------------------------------------------

def file_type_impact(path: CallPath) -> float:
    score = 0.0
    for f in path.related_changes:
        name = f.path.lower()
        score += next(
            (s for keys, s in _INTENT_FILE_TYPES if any(k in name for k in keys)),
            _INTENT_FILE_DEFAULT,
        )
    return min(score, _INTENT_FILE_CAP)


def change_size_value(context: GitChangeContext) -> float:
    score = _tier(_total_lines(context), _INTENT_SIZE_LINES, _INTENT_SIZE_LINES_DEFAULT)
    score += _tier(len(context.changed_files), _INTENT_SIZE_FILES, _INTENT_SIZE_FILES_DEFAULT)
    return min(score, _INTENT_SIZE_CAP)


def business_term_matches(path: CallPath, context: GitChangeContext) -> float:
    text = " ".join([
        path.description,
        " ".join(path.methods),
        " ".join(f.path for f in path.related_changes),
        " ".join(c.message for c in context.commits),
    ]).lower()
    matches = sum(1 for term in _BUSINESS_TERMS if term in text)
    return min(matches * _BUSINESS_TERM_SCORE, _BUSINESS_TERM_CAP)


def new_feature_value(path: CallPath) -> float:
    added = _added_text(path)
    score = 0.0
    if any(a in added for a in _ENDPOINT_ANNOTATIONS):
        score += _ENDPOINT_SCORE
    if "public" in added and "class" in added:
        score += _NEW_CLASS_SCORE
    if any(a in added for a in _COMPONENT_ANNOTATIONS):
        score += _COMPONENT_SCORE
    return score


def api_surface_value(path: CallPath) -> float:
    text = _path_text(path)
    score = 0.0
    if "controller" in text:
        score += _API_CONTROLLER_SCORE
    if any(t in text for t in _API_ENDPOINT_TERMS):
        score += _API_ENDPOINT_SCORE
    return score


def intent_git_score(path: CallPath, context: GitChangeContext | None) -> float:
    if context is None or context.is_empty:
        return 0.0
    score = (
        file_type_impact(path)
        + change_size_value(context)
        + business_term_matches(path, context)
        + new_feature_value(path)
        + api_surface_value(path)
    )
    return min(score, _GIT_CAP)


# ---------------------------------------------------------------------------
# Risk signals
# ---------------------------------------------------------------------------

def sensitive_file_risk(path: CallPath) -> float:
    risk = 0.0
    for f in path.related_changes:
        name = f.path.lower()
        if "config" in name or name.endswith(_CONFIG_SUFFIXES):
            risk += _RISK_CONFIG_FILE
        else:
            risk += next(
                (
                    s for keys, suffixes, s in _RISK_FILE_TYPES
                    if any(k in name for k in keys) or name.endswith(suffixes)
                ),
                _RISK_FILE_DEFAULT,
            )
    return min(risk, _RISK_FILE_CAP)


def change_size_risk(context: GitChangeContext) -> float:
    risk = _tier(_total_lines(context), _RISK_SIZE_LINES, _RISK_SIZE_LINES_DEFAULT)
    risk += _tier(len(context.changed_files), _RISK_SIZE_FILES, _RISK_SIZE_FILES_DEFAULT)
    return min(risk, _RISK_SIZE_CAP)


def sensitive_operation_risk(path: CallPath) -> float:
    added = _added_text(path)
    risk = sum(score for keyword, score in _SENSITIVE_KEYWORDS.items() if keyword in added)
    return min(risk, _SENSITIVE_CAP)


def deletion_risk(context: GitChangeContext) -> float:
    deleted_files = sum(1 for f in context.changed_files if f.change_type == FileChangeType.DELETED)
    deleted_lines = sum(f.deleted_lines for f in context.changed_files)
    risk = deleted_files * _DELETED_FILE_PENALTY
    risk += _tier(deleted_lines, _DELETED_LINES, _DELETED_LINES_DEFAULT)
    return min(risk, _DELETION_CAP)


def config_change_risk(context: GitChangeContext) -> float:
    config_files = [
        f for f in context.changed_files
        if f.path.lower().endswith(_CONFIG_CHANGE_SUFFIXES) or "config" in f.path.lower()
    ]
    return min(len(config_files) * _CONFIG_CHANGE_PENALTY, _CONFIG_CHANGE_CAP)


def risk_git_score(path: CallPath, context: GitChangeContext | None) -> float:
    if context is None or context.is_empty:
        return 0.0
    risk = (
        sensitive_file_risk(path)
        + change_size_risk(context)
        + sensitive_operation_risk(path)
        + deletion_risk(context)
        + config_change_risk(context)
    )
    return min(risk, _GIT_CAP)
