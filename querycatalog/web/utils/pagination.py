def paginate(items, page_size, page_number):
    """
    Slice one page out of an already filtered and ordered result list.

    Args:
        items: The full list of candidates, in display order.
        page_size: Number of items per page.
        page_number: 1-based page index.

    Returns:
        The half-open slice [(page_number - 1) * page_size,
        page_number * page_size) of items, clipped to its length. A page
        past the end is an empty list, not an error.

    Raises:
        ValueError: if page_number is lower than 1 or page_size is negative.
    """
    if page_number < 1:
        raise ValueError("Page number must be greater than or equal to 1")
    if page_size < 0:
        raise ValueError("Page size must not be negative")

    start_index = (page_number - 1) * page_size
    end_index = page_number * page_size
    return list(items[start_index:end_index])
