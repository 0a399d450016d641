"""
MCP tool definitions for cdp-mcp.

Tool schemas plus the grouping used to document them.
"""

from mcp.types import Tool

INTERACT_ACTIONS = [
    "click",
    "dblclick",
    "type",
    "clear",
    "select",
    "check",
    "uncheck",
    "upload",
    "upload_shadow",
    "focus",
    "blur",
    "hover",
    "press",
    "submit",
    "insert_text",
    "type_text",
    "click_at",
]

READ_TARGETS = ["page", "element", "attribute", "value"]

WAIT_CONDITIONS = [
    "element_visible",
    "element_hidden",
    "element_exists",
    "text_contains",
    "value_equals",
    "navigation",
]

FRAME_ACTIONS = ["list", "find", "click", "type", "evaluate"]

MONACO_ACTIONS = ["detect", "get_value", "set_value", "clear"]


def _schema(properties: dict, required: list[str] | None = None) -> dict:
    schema: dict = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


TOOLS: list[Tool] = [
    # Lifecycle
    Tool(
        name="cdp_launch",
        description=(
            "Launch a Chrome/Chromium browser with CDP enabled on a dedicated "
            "profile directory, then connect to its first tab."
        ),
        inputSchema=_schema(
            {
                "port": {"type": "integer", "description": "CDP debugging port (default: 9222)"},
                "headless": {
                    "type": "boolean",
                    "description": "Run headless without visible window (default: false)",
                },
                "browser": {
                    "type": "string",
                    "description": "Browser to use: chrome, chromium, edge, brave, auto (default: auto)",
                },
                "profile": {
                    "type": "string",
                    "description": "Profile name for isolated user data (default: cdp-mcp-default)",
                },
                "width": {"type": "integer", "description": "Window width (default: 1280)"},
                "height": {"type": "integer", "description": "Window height (default: 900)"},
                "start_url": {
                    "type": "string",
                    "description": "URL to open on launch (default: about:blank)",
                },
            }
        ),
    ),
    Tool(
        name="cdp_connect",
        description="Connect to an already-running Chrome/Chromium instance with CDP enabled.",
        inputSchema=_schema(
            {
                "port": {"type": "integer", "description": "CDP debugging port (default: 9222)"},
                "host": {"type": "string", "description": "CDP host (default: localhost)"},
                "tab": {
                    "type": "integer",
                    "description": "Tab index to connect to; past the end selects the last tab (default: 0)",
                },
            }
        ),
    ),
    Tool(
        name="cdp_list_tabs",
        description="List all open browser tabs.",
        inputSchema=_schema({}),
    ),
    Tool(
        name="cdp_switch_tab",
        description="Move the connection to another tab by index.",
        inputSchema=_schema(
            {"tab": {"type": "integer", "description": "Tab index from cdp_list_tabs"}},
            ["tab"],
        ),
    ),
    Tool(
        name="cdp_close",
        description="Disconnect from the browser, optionally closing a launched browser.",
        inputSchema=_schema(
            {
                "close_browser": {
                    "type": "boolean",
                    "description": "Also terminate the browser started by cdp_launch (default: false)",
                }
            }
        ),
    ),
    # Navigation
    Tool(
        name="cdp_navigate",
        description="Navigate to a URL or perform navigation actions (back, forward, refresh).",
        inputSchema=_schema(
            {
                "url": {"type": "string", "description": "URL to navigate to"},
                "action": {
                    "type": "string",
                    "enum": ["back", "forward", "refresh"],
                    "description": "Navigation action",
                },
            }
        ),
    ),
    # Interaction
    Tool(
        name="cdp_interact",
        description="Interact with elements: click, type, upload files, select options, etc.",
        inputSchema=_schema(
            {
                "action": {
                    "type": "string",
                    "enum": INTERACT_ACTIONS,
                    "description": "Action to perform",
                },
                "selector": {"type": "string", "description": "CSS selector for target element"},
                "value": {"type": "string", "description": "Value for type/select/insert actions"},
                "file_path": {"type": "string", "description": "File path for upload actions"},
                "key": {"type": "string", "description": "Key for press action (e.g., Enter, Tab)"},
                "ctrl": {"type": "boolean", "description": "Hold Ctrl for press"},
                "shift": {"type": "boolean", "description": "Hold Shift for press"},
                "alt": {"type": "boolean", "description": "Hold Alt for press"},
                "x": {"type": "number", "description": "X coordinate for click_at"},
                "y": {"type": "number", "description": "Y coordinate for click_at"},
                "button": {
                    "type": "string",
                    "enum": ["left", "right", "middle"],
                    "description": "Mouse button for click_at (default: left)",
                },
                "click_count": {"type": "integer", "description": "Click count for click_at"},
                "delay": {"type": "number", "description": "Delay between keystrokes in ms"},
            },
            ["action"],
        ),
    ),
    # Reading
    Tool(
        name="cdp_read",
        description="Read content from the page: full page text, element text, attributes.",
        inputSchema=_schema(
            {
                "target": {
                    "type": "string",
                    "enum": READ_TARGETS,
                    "description": "What to read (default: page)",
                },
                "selector": {"type": "string", "description": "CSS selector for element"},
                "attribute": {"type": "string", "description": "Attribute name to read"},
            }
        ),
    ),
    Tool(
        name="cdp_screenshot",
        description="Capture a screenshot of the page.",
        inputSchema=_schema(
            {
                "format": {
                    "type": "string",
                    "enum": ["png", "jpeg", "webp"],
                    "description": "Image format (default: png)",
                },
                "quality": {"type": "integer", "description": "JPEG/WebP quality 0-100"},
                "full_page": {"type": "boolean", "description": "Capture full scrollable page"},
                "path": {"type": "string", "description": "Save to file path"},
            }
        ),
    ),
    # Waiting
    Tool(
        name="cdp_wait",
        description="Wait for conditions: element visible, text contains, navigation, etc.",
        inputSchema=_schema(
            {
                "condition": {
                    "type": "string",
                    "enum": WAIT_CONDITIONS,
                    "description": "Condition to wait for",
                },
                "selector": {"type": "string", "description": "CSS selector for element conditions"},
                "value": {"type": "string", "description": "Value to match"},
                "timeout": {"type": "number", "description": "Timeout in ms (default: 30000)"},
            },
            ["condition"],
        ),
    ),
    # Scripting
    Tool(
        name="cdp_execute",
        description="Execute JavaScript in the page context.",
        inputSchema=_schema(
            {"script": {"type": "string", "description": "JavaScript to execute"}},
            ["script"],
        ),
    ),
    Tool(
        name="cdp_frames",
        description="List frames, find an element across frames, or act inside an iframe.",
        inputSchema=_schema(
            {
                "action": {
                    "type": "string",
                    "enum": FRAME_ACTIONS,
                    "description": "Frame operation",
                },
                "frame_id": {"type": "string", "description": "Frame id from the list action"},
                "selector": {"type": "string", "description": "CSS selector"},
                "value": {"type": "string", "description": "Value for the type action"},
                "script": {"type": "string", "description": "JavaScript for the evaluate action"},
            },
            ["action"],
        ),
    ),
    Tool(
        name="cdp_monaco",
        description="Read or write Monaco editor instances on the page.",
        inputSchema=_schema(
            {
                "action": {
                    "type": "string",
                    "enum": MONACO_ACTIONS,
                    "description": "Editor operation",
                },
                "value": {"type": "string", "description": "Content for set_value"},
                "editor_index": {
                    "type": "integer",
                    "description": "Editor instance index (default: 0)",
                },
            },
            ["action"],
        ),
    ),
]


class LifecycleTools:
    """Browser and connection lifecycle.

    Tools:
        - cdp_launch: Start a browser and connect
        - cdp_connect: Attach to a running browser
        - cdp_list_tabs: List page tabs
        - cdp_switch_tab: Move to another tab
        - cdp_close: Disconnect, optionally stop the browser
    """

    TOOLS = ["cdp_launch", "cdp_connect", "cdp_list_tabs", "cdp_switch_tab", "cdp_close"]


class PageTools:
    """Navigation, interaction and reads on the current tab.

    Tools:
        - cdp_navigate: Go to URL, back, forward, refresh
        - cdp_interact: Verified element actions and raw input
        - cdp_read: Page text, element text, attributes, values
        - cdp_screenshot: Viewport or full page capture
        - cdp_wait: Poll a page condition
    """

    TOOLS = ["cdp_navigate", "cdp_interact", "cdp_read", "cdp_screenshot", "cdp_wait"]


class ScriptTools:
    """Script execution in the page, its frames and its editors.

    Tools:
        - cdp_execute: Evaluate JavaScript in the main frame
        - cdp_frames: Frame listing, search and frame-scoped actions
        - cdp_monaco: Monaco editor helpers
    """

    TOOLS = ["cdp_execute", "cdp_frames", "cdp_monaco"]


ALL_TOOL_GROUPS = [LifecycleTools, PageTools, ScriptTools]

# Flat list of all tools
ALL_TOOLS = []
for group in ALL_TOOL_GROUPS:
    ALL_TOOLS.extend(group.TOOLS)
