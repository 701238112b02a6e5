import argparse
import asyncio
import sys
import threading
import time

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from models.chat import ChatMode, ChatRequest, ChatRequestError
from models.stream_event import EventKind
from orchestrator.core import ChatOrchestrator

DEFAULT_MODEL = "gpt-5"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Mirage Chat terminal client")
    parser.add_argument("prompt", nargs="?", help="Send one prompt and exit (omit for interactive mode)")
    parser.add_argument(
        "--model",
        action="append",
        dest="models",
        help="Logical model id (gpt-5, claude-4, gemini-2.5, ...). Repeat to compare 2-4 models.",
    )
    parser.add_argument(
        "--mode",
        default=ChatMode.DETAILED.value,
        choices=[m.value for m in ChatMode],
        help="Response style",
    )
    parser.add_argument("--no-stream", action="store_true", help="Wait for complete answers")
    parser.add_argument("--no-search", action="store_true", help="Never augment prompts with web search")
    return parser.parse_args(argv)


def show_loading_animation(stop_event: threading.Event) -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93mThinking {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * 20 + '\r')
    sys.stdout.flush()


def _print_search_event(event) -> None:
    if event.kind == EventKind.SEARCH_START:
        print(f"[search] {event.data.get('query')}")
    elif event.kind == EventKind.SEARCH_PROGRESS:
        print(f"[search] {event.data.get('message')}")
    elif event.kind == EventKind.SEARCH_COMPLETE:
        print(f"[search] {event.data.get('totalResults', 0)} result(s)\n")


async def _stream_one(orchestrator: ChatOrchestrator, request: ChatRequest) -> None:
    print(f"\n{request.model_id}: ", end="", flush=True)
    async for event in orchestrator.stream_chat(request):
        if event.is_search:
            _print_search_event(event)
            if event.kind == EventKind.SEARCH_COMPLETE:
                print(f"{request.model_id}: ", end="", flush=True)
        elif event.kind == EventKind.CHUNK:
            sys.stdout.write(event.chunk)
            sys.stdout.flush()
        elif event.kind == EventKind.ERROR:
            print(f"\n[error] {event.error}")
    print("\n")


async def _stream_many(orchestrator: ChatOrchestrator, message: str, args: argparse.Namespace) -> None:
    # Buffered per model; each answer prints when its terminal event arrives.
    buffers: dict[int, list[str]] = {}
    async for tagged in orchestrator.stream_compare(
        message, args.models, mode=args.mode, use_web_search=not args.no_search
    ):
        event = tagged.event
        if tagged.index is None:
            _print_search_event(event)
            continue
        parts = buffers.setdefault(tagged.index, [])
        if event.kind == EventKind.CHUNK:
            parts.append(event.chunk)
        elif event.is_terminal:
            text = "".join(parts)
            if event.kind == EventKind.ERROR:
                text += f"\n[error] {event.error}"
            print(f"\n=== {tagged.model} ===\n{text}\n")


async def _unary(orchestrator: ChatOrchestrator, message: str, args: argparse.Namespace) -> None:
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation,))
    loading_thread.daemon = True
    loading_thread.start()
    try:
        if len(args.models) > 1:
            results = await orchestrator.compare(
                message, args.models, mode=args.mode, use_web_search=not args.no_search
            )
        else:
            request = ChatRequest(
                message=message,
                model_id=args.models[0],
                mode=args.mode,
                use_web_search=not args.no_search,
            )
            results = [await orchestrator.chat(request)]
    finally:
        stop_animation.set()
        loading_thread.join()

    for model_id, result in zip(args.models, results):
        if result.success:
            print(f"\n=== {model_id} ===\n{result.response}\n")
        else:
            print(f"\n=== {model_id} ===\nError: {result.error}\n")


async def ask(orchestrator: ChatOrchestrator, message: str, args: argparse.Namespace) -> None:
    """Send one message to the selected model(s) and print the answer(s)."""
    if args.no_stream:
        await _unary(orchestrator, message, args)
    elif len(args.models) > 1:
        await _stream_many(orchestrator, message, args)
    else:
        request = ChatRequest(
            message=message,
            model_id=args.models[0],
            mode=args.mode,
            stream=True,
            use_web_search=not args.no_search,
        )
        await _stream_one(orchestrator, request)


async def run(args: argparse.Namespace) -> None:
    orchestrator = ChatOrchestrator()
    print(f"Providers: {orchestrator.config.get_model_info()}")
    try:
        if args.prompt:
            await ask(orchestrator, args.prompt, args)
            return

        print("\n=== Mirage Chat ===")
        print(f"Models: {', '.join(args.models)} | mode: {args.mode}")
        print("Type 'exit' to quit or 'help' for commands\n")

        while True:
            try:
                user_input = (await asyncio.to_thread(input, "You: ")).strip()
            except (EOFError, KeyboardInterrupt):
                print("\nExiting...")
                break

            if not user_input:
                continue

            if user_input.lower() in ('exit', 'quit'):
                print("\nGoodbye!")
                break

            if user_input.lower() == 'help':
                print("\n=== Available Commands ===")
                print("help      - Show this help message")
                print("exit/quit - Exit the program\n")
                continue

            try:
                await ask(orchestrator, user_input, args)
            except ChatRequestError as e:
                print(f"\nError: {e}")
    finally:
        await orchestrator.aclose()


def main(argv=None):
    args = parse_args(argv)
    args.models = args.models or [DEFAULT_MODEL]
    if len(args.models) > 4:
        print("Error: at most 4 models can be compared")
        return 2
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nExiting...")
    except ChatRequestError as e:
        print(f"Error: {e}")
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
