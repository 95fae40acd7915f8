from __future__ import annotations

from typing import Any, List, Sequence

import streamlit as st

from views.transforms import ROWS_PER_PAGE_OPTIONS, page_count, paginate


def paged(rows: Sequence[Any], key: str, default_size: int = 25) -> List[Any]:
    """Client-side pager; changing the page size returns to the first page."""
    size_key, page_key = f"{key}_size", f"{key}_page"
    left, right = st.columns([3, 1])
    with right:
        size = st.selectbox(
            "Filas por página",
            ROWS_PER_PAGE_OPTIONS,
            index=ROWS_PER_PAGE_OPTIONS.index(default_size),
            key=size_key,
        )
    pages = page_count(len(rows), size)
    if st.session_state.get(f"{key}_last_size") != size:
        st.session_state[f"{key}_last_size"] = size
        st.session_state[page_key] = 1
    elif st.session_state.get(page_key, 1) > pages:
        st.session_state[page_key] = pages

    with left:
        page = st.number_input(f"Página (de {pages})", min_value=1, max_value=pages, step=1, key=page_key)
    return paginate(rows, int(page) - 1, size)
