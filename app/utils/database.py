from supabase import AsyncClient
from typing import Optional
from .logger import logger


def _apply_filters(query, filters: dict | None):
    """Apply ``{column: value | (operator, value)}`` filters to a PostgREST query.

    Supported operators: 'eq', 'in', 'gt', 'lt', 'gte', 'lte', 'like', 'ilike', 'neq', 'is'.
    Plain (non-tuple) values are equality checks.
    """
    if not filters:
        return query
    for key, condition in filters.items():
        if isinstance(condition, tuple):  # Special operator cases
            operator, value = condition
            if operator == "eq":
                query = query.eq(key, value)
            elif operator == "in":
                query = query.in_(key, value)
            elif operator == "is":
                query = query.is_(key, value)
            elif operator == "gt":
                query = query.gt(key, value)
            elif operator == "lt":
                query = query.lt(key, value)
            elif operator == "gte":
                query = query.gte(key, value)
            elif operator == "lte":
                query = query.lte(key, value)
            elif operator == "like":
                query = query.like(key, value)
            elif operator == "ilike":
                query = query.ilike(key, value)
            elif operator == "neq":
                query = query.neq(key, value)
            else:
                raise ValueError(f"unsupported filter operator: {operator}")
        else:  # Default to equality check
            query = query.eq(key, condition)
    return query


async def insert_data(
    supabase: AsyncClient,
    table_name: str,
    data: dict,
):
    """Insert one row and return the inserted rows.

    Returns the string ``"duplicate"`` when a unique constraint rejects the
    row; every other error is logged and re-raised.
    """
    try:
        response = await supabase.table(table_name).insert(data).execute()
        return getattr(response, "data", None) or []

    except Exception as e:
        # supabase errors are badly structured and must cast to string and parsed
        if "duplicate" in str(e).lower():
            return "duplicate"

        logger.error(f"Error during insert to {table_name}: {e}")
        raise e


async def query_data(
    supabase: AsyncClient,
    table_name: str,
    filters: dict = None,
    order_by: tuple = None,
    select_fields: str = "*",
    limit: Optional[int] = None,
    count: Optional[str] = None,
):
    """
    Query a Supabase table with dynamic filters, ordering, limit, and count.

    :param table_name: Name of the table to query.
    :param filters: Dictionary where keys are column names and values are filter conditions.
                     Use a tuple (operator, value) for non-equality filters.
    :param order_by: Tuple (column_name, desc) where desc=True means descending order.
    :param select_fields: Fields to select (default is "*").
    :param limit: Optional integer to limit the number of results.
    :param count: Optional string to specify count method (e.g., 'exact').
    :return: Query result from Supabase.
    """
    query = supabase.table(table_name).select(select_fields, count=count)
    query = _apply_filters(query, filters)

    # Apply ordering if provided
    if order_by:
        column, desc = order_by
        query = query.order(column, desc=desc)

    # Apply limit if provided
    if limit:
        query = query.limit(limit)

    return await query.execute()


async def update_data(
    supabase: AsyncClient,
    table_name: str,
    *,
    update_values: dict,
    filters: dict,
    error_message: str = "Update failed",
):
    """
    Updates records in a specified table based on provided filters.

    Parameters:
    - table_name: The name of the table to update
    - update_values: Dictionary of columns and values to update
    - filters: Dictionary of column-value pairs to filter by
    - error_message: Message to use for error reporting

    Returns the updated rows (empty list if nothing matched).
    """
    if not filters:
        # Refuse table-wide updates
        raise ValueError(f"{error_message}: update on {table_name} requires filters")
    try:
        query = supabase.table(table_name).update(update_values)
        query = _apply_filters(query, filters)
        response = await query.execute()
        return getattr(response, "data", None) or []

    except Exception as e:
        logger.error(f"{error_message} ({table_name}): {e}")
        raise e


async def query_one(
    supabase: AsyncClient,
    table_name: str,
    match: dict | None = None,
    order_by: tuple | None = None,
    select_fields: str = "*",
):
    """Return the first (or *None*) row that matches the filters."""
    resp = await query_data(
        supabase,
        table_name,
        filters=match or {},
        order_by=order_by,
        select_fields=select_fields,
        limit=1,
    )
    # Supabase Python client returns a .data attribute on the response object.
    rows = getattr(resp, "data", None) or []
    return rows[0] if rows else None


async def query_many(
    supabase: AsyncClient,
    table_name: str,
    match: dict | None = None,
    order_by: tuple | None = None,
    select_fields: str = "*",
    limit: int | None = None,
):
    """Return a list of rows that match the filters (empty list if none)."""
    resp = await query_data(
        supabase,
        table_name,
        filters=match or {},
        order_by=order_by,
        select_fields=select_fields,
        limit=limit,
    )
    return getattr(resp, "data", None) or []
