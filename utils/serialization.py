import json

import numpy as np
import pandas as pd


def make_json_serializable(obj):
    """Convert numpy types and other non-serializable objects to JSON-compatible types"""
    if isinstance(obj, dict):
        return {str(key): make_json_serializable(value) for key, value in obj.items()}
    elif isinstance(obj, (list, tuple, set)):
        return [make_json_serializable(item) for item in obj]
    elif isinstance(obj, (np.bool_, bool)):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, (str, int, float)) or obj is None:
        return obj
    elif pd.isna(obj):
        return None
    elif hasattr(obj, 'isoformat'):  # datetime objects
        return obj.isoformat()
    elif hasattr(obj, 'item'):  # numpy scalars
        return obj.item()
    else:
        return str(obj)


def dumps(obj):
    """Serialize to a JSON string after converting non-serializable values"""
    return json.dumps(make_json_serializable(obj))


def loads(text, default=None):
    """Parse stored JSON text, returning ``default`` for empty columns"""
    if text:
        return json.loads(text)
    return default
