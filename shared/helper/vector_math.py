import math


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors, i.e. 1 - cosine distance.

    Args:
        a (list[float]): First vector.
        b (list[float]): Second vector, same dimension as a.

    Returns:
        float: Value in [-1, 1]. 0.0 if either vector has zero magnitude.

    Raises:
        ValueError: If the vectors differ in dimension.
    """
    if len(a) != len(b):
        raise ValueError(f"Embeddings must have the same dimension ({len(a)} != {len(b)})")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)
