"""Query composer: merges committed criteria into a QueryDescriptor."""

from typing import Any

from crm_sync.data import CollectionSpec
from crm_sync.models.query import FilterKey, QueryDescriptor, normalize_filters

# Changing any of these sends the listing back to page 1
RESETTING_FIELDS = ("page_size", "search_term", "filters", "sort")


def compose(current: QueryDescriptor, **change: Any) -> QueryDescriptor:
    """Apply a partial change to a descriptor.

    A change to the search term, filters, page size or sort forces
    ``page=1`` whatever page the change asks for. A change that only moves
    the page leaves everything else untouched. Filter changes merge into
    the current filters; a value of "all" clears that filter.

    Args:
        current: Descriptor currently requested
        **change: Fields to change (page, page_size, search_term, filters, sort)

    Returns:
        ``current`` itself if nothing effectively changed, else a new descriptor

    Example:
        >>> q = QueryDescriptor(page=7)
        >>> compose(q, search_term="acme").page
        1
    """
    unknown = set(change) - set(QueryDescriptor.model_fields)
    if unknown:
        raise ValueError(f"Unknown query fields: {', '.join(sorted(unknown))}")

    fields = current.model_dump()
    if "filters" in change:
        merged = dict(current.filters)
        for key, value in (change.pop("filters") or {}).items():
            merged[FilterKey(key)] = value
        fields["filters"] = normalize_filters(merged)
    if "search_term" in change:
        change["search_term"] = (change["search_term"] or "").strip()
    fields.update(change)

    candidate = QueryDescriptor.model_validate(fields)
    if any(getattr(candidate, name) != getattr(current, name) for name in RESETTING_FIELDS):
        candidate = candidate.model_copy(update={"page": 1})

    if candidate == current:
        return current
    return candidate


def to_params(
    descriptor: QueryDescriptor,
    collection: CollectionSpec,
    paginate: bool = True,
) -> dict[str, Any]:
    """Map a descriptor to the collection's API query parameters.

    Args:
        descriptor: Descriptor to translate
        collection: Target collection (owns the filter parameter names)
        paginate: Include page/limit (False for exports)

    Returns:
        Parameter dict; "all" filters and an empty search are omitted

    Raises:
        ValueError: If a filter is not supported by the collection
    """
    params: dict[str, Any] = {}
    if paginate:
        params["page"] = descriptor.page
        params["limit"] = descriptor.page_size
    if descriptor.search_term:
        params["search"] = descriptor.search_term

    for key, value in descriptor.filters.items():
        if key not in collection.filter_params:
            raise ValueError(f"Collection {collection.name} cannot be filtered by {key.value}")
        params[collection.filter_params[key]] = value

    if descriptor.sort is not None:
        params["sort"] = descriptor.sort
    return params
