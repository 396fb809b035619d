"""
Data-parallel fan-out used by the detector and the matcher.
"""

from concurrent.futures import ThreadPoolExecutor


def fan_out(func, items, workers=None):
    """
    Apply func to every item and return the results in input order.

    Runs sequentially unless workers > 1, in which case the items are
    processed by a thread pool. Exceptions raised by func propagate.
    """
    items = list(items)
    if not workers or workers <= 1 or len(items) <= 1:
        return [func(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(func, items))
