from pydantic import BaseModel


class ScrollResult(BaseModel):
    """One page of chunk points, or every page collected by do_scroll_all().

    Attributes:
        result:           Raw point dicts ({"id", "vector"?, "payload"}).
        status:           Backend status string (e.g. "ok").
        next_page_offset: Cursor for the next page; None on the last page and
                          always None on collected results.
    """

    result: list[dict]
    status: str = "ok"
    next_page_offset: str | int | None = None
