"""Minimal MCP server over stdio used by the tests.

    fake_mcp_server.py [--tools a,b] [--page-size N] [--exit-after-init]

Tools:
    echo    returns its `text` argument
    add     returns a + b as structured content
    error   returns an isError result
    slow    sleeps `seconds` (default 30) before answering
    any other name returns "<name> called"
"""

import argparse
import json
import sys
import threading
import time

write_lock = threading.Lock()


def send(message):
    with write_lock:
        sys.stdout.write(json.dumps(message) + "\n")
        sys.stdout.flush()


def log(line):
    sys.stderr.write(line + "\n")
    sys.stderr.flush()


def tool_declaration(name):
    schema = {"type": "object", "properties": {}}
    if name == "echo":
        schema = {"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]}
    elif name == "add":
        schema = {
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number"}},
            "required": ["a", "b"],
        }
    return {"name": name, "description": f"The {name} tool", "inputSchema": schema}


def call_tool(request_id, name, arguments):
    if name == "echo":
        result = {"content": [{"type": "text", "text": str(arguments.get("text", ""))}]}
    elif name == "add":
        total = arguments.get("a", 0) + arguments.get("b", 0)
        result = {"content": [], "structuredContent": {"sum": total}}
    elif name == "error":
        result = {"content": [{"type": "text", "text": "tool failed"}], "isError": True}
    elif name == "slow":
        time.sleep(float(arguments.get("seconds", 30)))
        result = {"content": [{"type": "text", "text": "slow done"}]}
    else:
        result = {"content": [{"type": "text", "text": f"{name} called"}]}
    send({"jsonrpc": "2.0", "id": request_id, "result": result})


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--tools", default="echo")
    parser.add_argument("--page-size", type=int, default=0)
    parser.add_argument("--exit-after-init", action="store_true")
    options = parser.parse_args()
    tools = [name for name in options.tools.split(",") if name]

    log("[server] INFO starting up")
    log("fake server warning: ready")

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue
        message = json.loads(line)
        method = message.get("method")
        request_id = message.get("id")

        if method == "initialize":
            send(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "result": {
                        "protocolVersion": message["params"]["protocolVersion"],
                        "capabilities": {"tools": {}},
                        "serverInfo": {"name": "fake", "version": "1.0"},
                    },
                }
            )
        elif method == "notifications/initialized":
            if options.exit_after_init:
                return 0
        elif method == "notifications/cancelled":
            log(f"cancelled request {message['params']['requestId']}")
        elif method == "tools/list":
            declarations = [tool_declaration(name) for name in tools]
            cursor = int(message.get("params", {}).get("cursor") or 0)
            if options.page_size:
                page = declarations[cursor : cursor + options.page_size]
                result = {"tools": page}
                if cursor + options.page_size < len(declarations):
                    result["nextCursor"] = str(cursor + options.page_size)
            else:
                result = {"tools": declarations}
            send({"jsonrpc": "2.0", "id": request_id, "result": result})
        elif method == "tools/call":
            params = message.get("params", {})
            threading.Thread(
                target=call_tool,
                args=(request_id, params.get("name"), params.get("arguments") or {}),
                daemon=True,
            ).start()
        elif request_id is not None:
            send(
                {
                    "jsonrpc": "2.0",
                    "id": request_id,
                    "error": {"code": -32601, "message": f"Method not found: {method}"},
                }
            )
    return 0


if __name__ == "__main__":
    sys.exit(main())
