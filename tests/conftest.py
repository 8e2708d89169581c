# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Shared test configuration and fixtures."""

try:
    import semantic_dom  # noqa: F401
except ImportError:
    raise ImportError("semantic_dom is not installed. Run: pip install -e '.[dev]'") from None

import pytest

EXAMPLE_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head><title>Example</title></head>
<body>
  <nav aria-label="Main"><a href="/home">Home</a></nav>
  <main><button>Submit</button></main>
</body>
</html>
"""

RICH_HTML = """\
<!DOCTYPE html>
<html lang="de">
<head><title>  Shop   Checkout </title><script>var x = 1;</script></head>
<body>
  <header><a href="/" aria-label="Logo">Logo</a></header>
  <nav aria-label="Primary">
    <ul>
      <li><a href="/products">Products</a></li>
      <li><a href="#cart">Cart</a></li>
      <li><a href="javascript:alert(1)">Evil</a></li>
    </ul>
  </nav>
  <main>
    <h1>Checkout</h1>
    <h2>Shipping</h2>
    <form aria-label="Shipping form">
      <input type="text" id="name" placeholder="Full name">
      <input type="email" aria-label="Email">
      <input type="checkbox" aria-checked="false" aria-label="Gift wrap">
      <select aria-label="Country"><option>DE</option></select>
      <button type="submit">Place order</button>
      <button disabled>Cancel</button>
    </form>
    <div><button data-agent-id="help" aria-expanded="false">Help</button></div>
    <a href="mailto:help@example.com">Email us</a>
  </main>
  <footer><p>Footer text</p></footer>
  <style>.x { color: red }</style>
</body>
</html>
"""


@pytest.fixture
def example_html() -> str:
    return EXAMPLE_HTML


@pytest.fixture
def rich_html() -> str:
    return RICH_HTML


@pytest.fixture
def example_doc():
    from semantic_dom.builder import build_document

    return build_document(EXAMPLE_HTML, url="https://example.com")


@pytest.fixture
def rich_doc():
    from semantic_dom.builder import build_document

    return build_document(RICH_HTML, url="https://shop.example.com/checkout")


@pytest.fixture(autouse=True)
def _reset_state():
    """Reset the server's loaded document before and after each test."""
    import semantic_dom.server as srv

    old_config = srv._state.config
    srv._state.reset()
    yield
    srv._state.reset()
    srv._state.config = old_config
