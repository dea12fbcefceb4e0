"""
Page builder kernel test configuration.

Shared fixtures build a small storefront page:

  root
    sec-1  (2 columns)
      col-1  → w-head (heading, mobile font size override), w-text
      col-2  → w-btn
    sec-2  (1 column)
      col-3  → (empty)
"""

import pytest

from builder.kernel.nodes import make_column, make_root, make_section, make_widget


def build_page():
    heading = make_widget(
        "heading",
        {"content": "Hello", "level": "h1"},
        style={"fontSize": 32, "color": "#111111"},
        node_id="w-head",
    )
    heading.responsive = {"mobile": {"style": {"fontSize": 20}}}
    text = make_widget("text", {"content": "<p>Body</p>"}, node_id="w-text")
    button = make_widget("button", {"text": "Buy", "link": "/shop"}, node_id="w-btn")

    sec1 = make_section(
        props={"numColumns": 2},
        children=[
            make_column(children=[heading, text], node_id="col-1"),
            make_column(children=[button], node_id="col-2"),
        ],
        node_id="sec-1",
    )
    sec2 = make_section(
        props={"numColumns": 1},
        children=[make_column(node_id="col-3")],
        node_id="sec-2",
    )
    return make_root([sec1, sec2])


@pytest.fixture
def page():
    return build_page()
