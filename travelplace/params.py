from typing import Any, Dict, Mapping, Optional

from flask import has_request_context, request


def get_url_parameters() -> Dict[str, str]:
    """Query string of the current request as a flat dict (last value wins)."""
    if not has_request_context():
        return {}
    return {key: values[-1] for key, values in request.args.lists() if values}


def merge_step_data(url_params: Mapping[str, Any], stored: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    # url values win key by key; stored values fill the gaps
    merged = dict(stored) if isinstance(stored, Mapping) else {}
    merged.update(url_params)
    return merged
