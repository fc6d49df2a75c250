#!/usr/bin/env python3
"""
GBase Slides - Interactive CLI Debug Tool

Usage:
    python tools/slides_cli.py [--url URL] [--session SESSION_ID] [--api-key KEY]

Commands:
    g <text>     - Generate slides from text
    f <path>     - Generate slides from a text file
    t <path>     - Upload a reference template image
    x            - Reset (cancels the running batch)
    j            - Toggle raw JSON display
    q            - Quit
"""

import asyncio
import base64
import json
import mimetypes
import sys
import uuid
from datetime import datetime
from pathlib import Path

import websockets

COLORS = {
    'reset': '\033[0m',
    'red': '\033[91m',
    'green': '\033[92m',
    'yellow': '\033[93m',
    'blue': '\033[94m',
    'magenta': '\033[95m',
    'cyan': '\033[96m',
    'gray': '\033[90m',
    'bold': '\033[1m',
}


def color(text, color_name):
    return f"{COLORS.get(color_name, '')}{text}{COLORS['reset']}"


def format_timestamp():
    return datetime.now().strftime("%H:%M:%S")


def print_message(msg_type, payload, raw_json=None, show_raw=False):
    """Pretty-print a server message."""
    ts = color(f"[{format_timestamp()}]", 'gray')

    if msg_type == 'status_update':
        print(f"{ts} {color('STATUS:', 'magenta')} [{payload.get('state')}] {payload.get('text', '')}")

    elif msg_type == 'analysis_result':
        slides = payload.get('slides', [])
        print(f"{ts} {color('ANALYSIS:', 'blue')} {len(slides)} slides ({payload.get('detected_language')})")
        for slide in slides:
            slide_number = f"[{slide.get('id')}]"
            print(f"    {color(slide_number, 'cyan')} {slide.get('title', '')}")

    elif msg_type == 'queue_status':
        if not payload.get('active'):
            print(f"{ts} {color('QUEUE:', 'gray')} idle")
        elif payload.get('cooldown_remaining'):
            print(
                f"{ts} {color('QUEUE:', 'yellow')} slide {payload.get('current_number')}/{payload.get('total')} "
                f"cooling down: {payload.get('cooldown_remaining')}s (eta {payload.get('eta_seconds')}s)"
            )
        else:
            print(
                f"{ts} {color('QUEUE:', 'yellow')} slide {payload.get('current_number')}/{payload.get('total')} "
                f"requesting (eta {payload.get('eta_seconds')}s)"
            )

    elif msg_type == 'job_update':
        status = payload.get('status')
        line = f"{ts} {color('JOB:', 'green' if status == 'succeeded' else 'blue')} {payload.get('job_id')} -> {status}"
        if payload.get('error_note'):
            line += color(f" ({payload['error_note']})", 'red')
        if payload.get('image_url'):
            line += f" image={len(payload['image_url'])} chars"
        print(line)

    elif msg_type == 'batch_complete':
        print(
            f"{ts} {color('DONE:', 'green')} {payload.get('success_count')} succeeded, "
            f"{payload.get('failure_count')} failed, {payload.get('not_attempted_count')} not attempted"
        )

    elif msg_type == 'style_suggestions':
        for suggestion in payload.get('suggestions', []):
            print(f"{ts} {color('STYLE:', 'cyan')} {suggestion.get('label')}: {suggestion.get('description', '')[:120]}")

    elif msg_type == 'error':
        print(f"{ts} {color('ERROR:', 'red')} [{payload.get('code')}] {payload.get('text')}")

    else:
        print(f"{ts} {color(f'{str(msg_type).upper()}:', 'gray')} {str(payload)[:200]}")

    if show_raw and raw_json:
        print(f"    {color('RAW:', 'gray')} {json.dumps(raw_json, indent=2)[:500]}")


async def receive_messages(ws, show_raw_ref):
    """Background task to receive and display messages."""
    try:
        async for message in ws:
            try:
                data = json.loads(message)
            except json.JSONDecodeError:
                print(color(f"[RAW] {message[:200]}", 'red'))
                continue
            print_message(data.get('type', 'unknown'), data.get('payload', {}), data, show_raw_ref[0])
    except websockets.ConnectionClosed:
        print(color("\nConnection closed", 'yellow'))


def image_to_data_url(path: Path) -> str:
    mime_type = mimetypes.guess_type(path.name)[0] or 'image/png'
    return f"data:{mime_type};base64,{base64.b64encode(path.read_bytes()).decode('ascii')}"


async def send(ws, message_type, payload=None):
    await ws.send(json.dumps({"type": message_type, "payload": payload or {}}))


async def handle_command(ws, line, show_raw_ref) -> bool:
    """Run one input line. Returns False to quit."""
    command, _, argument = line.partition(' ')
    command = command.lower()

    if command == 'q':
        return False
    if command == 'j':
        show_raw_ref[0] = not show_raw_ref[0]
        print(color(f"Raw JSON: {'ON' if show_raw_ref[0] else 'OFF'}", 'yellow'))
    elif command == 'x':
        await send(ws, 'reset')
    elif command == 'g' and argument:
        await send(ws, 'generate', {"text": argument})
    elif command == 'f' and argument:
        await send(ws, 'generate', {"text": Path(argument).read_text(encoding='utf-8')})
    elif command == 't' and argument:
        await send(ws, 'analyze_reference', {"image": image_to_data_url(Path(argument))})
    else:
        print(color("Unknown command (g/f/t/x/j/q)", 'red'))
    return True


async def main(url, session_id=None, api_key=None):
    """Main CLI loop."""
    session_id = session_id or f"cli-debug-{uuid.uuid4().hex[:8]}"
    full_url = f"{url}/ws?session_id={session_id}"

    print(color("=" * 60, 'bold'))
    print(color("GBase Slides - CLI Debug Tool", 'bold'))
    print(color("=" * 60, 'bold'))
    print(f"Session: {color(session_id, 'cyan')}")
    print(f"URL: {color(full_url, 'gray')}")

    show_raw_ref = [False]

    try:
        async with websockets.connect(full_url, ping_interval=30, ping_timeout=10, max_size=None) as ws:
            print(color("Connected!\n", 'green'))
            if api_key:
                await send(ws, 'configure', {"api_key": api_key})

            receive_task = asyncio.create_task(receive_messages(ws, show_raw_ref))
            loop = asyncio.get_running_loop()

            while True:
                line = (await loop.run_in_executor(None, sys.stdin.readline)).strip()
                if not line:
                    continue
                try:
                    if not await handle_command(ws, line, show_raw_ref):
                        break
                except OSError as e:
                    print(color(f"Cannot read file: {e}", 'red'))

            receive_task.cancel()
            try:
                await receive_task
            except asyncio.CancelledError:
                pass

    except (OSError, websockets.WebSocketException) as e:
        print(color(f"Connection error: {e}", 'red'))


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description="GBase Slides CLI Debug Tool")
    parser.add_argument("--url", default="ws://localhost:8000", help="WebSocket base URL")
    parser.add_argument("--session", default=None, help="Session ID")
    parser.add_argument("--api-key", default=None, help="Gemini API key sent with 'configure'")
    args = parser.parse_args()

    asyncio.run(main(args.url, args.session, args.api_key))
