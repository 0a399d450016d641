"""
Page-side JavaScript snippets.

Every function returns an expression for Runtime.evaluate. User-supplied
strings are embedded with ``json.dumps`` so quotes, backslashes and newlines
survive intact. Action snippets resolve to ``{success, error?}`` objects.
"""

from __future__ import annotations

import json

PAGE_LOCATION = "({url: document.URL, title: document.title})"

HISTORY_BACK = "history.back()"
HISTORY_FORWARD = "history.forward()"
RELOAD = "location.reload()"

SHADOW_FILE_INPUT = "window.__fileInput"


def _js(value: object) -> str:
    return json.dumps(value)


def _query(selector: str) -> str:
    return f"document.querySelector({_js(selector)})"


def _with_element(selector: str, body: str) -> str:
    return f"""
(() => {{
  const el = {_query(selector)};
  if (!el) return {{ success: false, error: 'Element not found' }};
  {body}
}})()
"""


def scroll_into_view(selector: str) -> str:
    return _with_element(
        selector,
        "el.scrollIntoView({ block: 'center', behavior: 'instant' });\n"
        "  return { success: true };",
    )


def click_element(selector: str) -> str:
    """Scroll into view and click through the DOM."""
    return _with_element(
        selector,
        "el.scrollIntoView({ block: 'center', behavior: 'instant' });\n"
        "  el.click();\n"
        "  return { success: true };",
    )


def set_input_value(selector: str, text: str, *, clear: bool = True) -> str:
    """Assign a value in a way controlled-input frameworks observe.

    Elements without a value property (divs, contenteditable) are refused.
    The value goes through the native setter on the element's prototype
    chain, React's ``onChange`` prop is called when present, and
    ``input``/``change`` events are dispatched for everything else.
    """
    new_value = _js(text) if clear else f"el.value + {_js(text)}"
    return _with_element(
        selector,
        f"""if (!('value' in el) || el.isContentEditable) {{
    return {{ success: false, error: 'Element is not a text field' }};
  }}
  el.focus();
  const newValue = {new_value};
  let proto = Object.getPrototypeOf(el);
  while (proto && !Object.getOwnPropertyDescriptor(proto, 'value')) {{
    proto = Object.getPrototypeOf(proto);
  }}
  const nativeSetter = proto && Object.getOwnPropertyDescriptor(proto, 'value').set;
  if (nativeSetter) {{
    nativeSetter.call(el, newValue);
  }} else {{
    el.value = newValue;
  }}
  const reactProps = Object.keys(el).find(key => key.startsWith('__reactProps$'));
  if (reactProps && el[reactProps] && el[reactProps].onChange) {{
    el[reactProps].onChange({{ target: el, currentTarget: el }});
  }}
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  el.dispatchEvent(new Event('change', {{ bubbles: true }}));
  return {{ success: true, value: el.value }};""",
    )


def read_value(selector: str) -> str:
    return f"{_query(selector)}?.value ?? null"


def clear_value(selector: str) -> str:
    return set_input_value(selector, "", clear=True)


def select_option(selector: str, value: str) -> str:
    return _with_element(
        selector,
        f"""el.value = {_js(value)};
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  el.dispatchEvent(new Event('change', {{ bubbles: true }}));
  return {{ success: true, value: el.value }};""",
    )


def set_checked(selector: str, checked: bool) -> str:
    """Click the element only when its state differs from ``checked``."""
    return _with_element(
        selector,
        f"""if (el.checked !== {_js(checked)}) el.click();
  return {{ success: true, checked: el.checked }};""",
    )


def read_checked(selector: str) -> str:
    return f"{_query(selector)}?.checked ?? null"


def input_file_names(selector: str) -> str:
    return f"""
(() => {{
  const el = {_query(selector)};
  return el?.files ? Array.from(el.files).map(f => f.name) : [];
}})()
"""


def focus(selector: str) -> str:
    return _with_element(selector, "el.focus();\n  return { success: true };")


def blur(selector: str) -> str:
    return _with_element(selector, "el.blur();\n  return { success: true };")


def hover(selector: str) -> str:
    return _with_element(
        selector,
        """el.dispatchEvent(new MouseEvent('mouseover', { bubbles: true }));
  el.dispatchEvent(new MouseEvent('mouseenter', { bubbles: false }));
  return { success: true };""",
    )


def submit(selector: str) -> str:
    """Submit a form, or the form owning the element."""
    return _with_element(
        selector,
        """const form = el.tagName === 'FORM' ? el : el.form;
  if (!form) return { success: false, error: 'Element is not in a form' };
  if (form.requestSubmit) form.requestSubmit(); else form.submit();
  return { success: true };""",
    )


def page_info(limit: int) -> str:
    return f"""
({{
  url: document.URL,
  title: document.title,
  text: (document.body ? document.body.innerText : '').slice(0, {int(limit)}),
}})
"""


def element_text(selector: str) -> str:
    return f"{_query(selector)}?.innerText ?? null"


def element_attribute(selector: str, attribute: str) -> str:
    return f"{_query(selector)}?.getAttribute({_js(attribute)}) ?? null"


# Wait conditions. Each evaluates to a boolean.


def element_exists(selector: str) -> str:
    return f"!!{_query(selector)}"


def element_visible(selector: str) -> str:
    return f"""
(() => {{
  const el = {_query(selector)};
  if (!el) return false;
  const rect = el.getBoundingClientRect();
  return rect.width > 0 && rect.height > 0;
}})()
"""


def element_hidden(selector: str) -> str:
    return f"""
(() => {{
  const el = {_query(selector)};
  if (!el) return true;
  const rect = el.getBoundingClientRect();
  return rect.width === 0 || rect.height === 0;
}})()
"""


def text_contains(value: str, selector: str = "body") -> str:
    return f"({_query(selector)}?.innerText ?? '').includes({_js(value)})"


def value_equals(selector: str, value: str) -> str:
    return f"{_query(selector)}?.value === {_js(value)}"


# Monaco editor. Each snippet checks the global registry first.

_MONACO_GUARD = """
  if (typeof monaco === 'undefined' || !monaco.editor) {
    return { found: false, success: false, error: 'Monaco editor not loaded on page' };
  }
  const editors = monaco.editor.getEditors();
  if (!editors || editors.length === 0) {
    return { found: false, success: false, error: 'No Monaco editor instances found' };
  }
"""


def _monaco_index_guard(index: int) -> str:
    return f"""
  const index = {int(index)};
  if (index < 0 || index >= editors.length) {{
    return {{
      found: true,
      success: false,
      error: 'Editor index ' + index + ' out of range. Found ' + editors.length + ' editors.',
    }};
  }}
  const model = editors[index].getModel();
"""


def monaco_detect() -> str:
    return f"""
(() => {{{_MONACO_GUARD}
  return {{
    found: true,
    count: editors.length,
    models: editors.map((e, i) => ({{
      index: i,
      language: e.getModel()?.getLanguageId() || 'unknown',
      lineCount: e.getModel()?.getLineCount() || 0,
      valueLength: e.getModel()?.getValue().length || 0,
    }})),
  }};
}})()
"""


def monaco_get_value(index: int) -> str:
    return f"""
(() => {{{_MONACO_GUARD}{_monaco_index_guard(index)}
  return {{ found: true, success: true, editorIndex: index, value: model.getValue() }};
}})()
"""


def monaco_set_value(index: int, value: str) -> str:
    return f"""
(() => {{{_MONACO_GUARD}{_monaco_index_guard(index)}
  try {{
    model.setValue({_js(value)});
  }} catch (e) {{
    return {{ found: true, success: false, error: e.toString() }};
  }}
  return {{
    found: true,
    success: true,
    editorIndex: index,
    lineCount: model.getLineCount(),
    valueLength: model.getValue().length,
  }};
}})()
"""


def monaco_clear(index: int) -> str:
    return monaco_set_value(index, "")
