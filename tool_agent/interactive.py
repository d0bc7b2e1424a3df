#!/usr/bin/env python3
"""
tool-agent command line.

Chat with a model that can call Python functions loaded with
``--tools module:attribute``, or run a single query with ``-q``.
"""

import argparse
import importlib
import inspect
import json
import logging
import signal
import sys
import threading
from typing import Callable, Optional

from .agent import ToolAgent
from .config import config
from .config_loader import load_app_config
from .exceptions import AgentError, ValidationError
from .models import Role

logger = logging.getLogger(__name__)

# Set by the first Ctrl+C; a second one exits immediately
_stop = threading.Event()

HELP_TEXT = """
Commands:
  /help      show this text
  /tools     list the functions the model can call
  /history   show every message of the conversation
  /clear     start a new conversation (tools stay registered)
  /verbose   toggle debug logging
  /quit      leave

Anything else is sent to the model.
"""

RULE = "─" * 70


def _on_sigint(signum: int, frame) -> None:
    if _stop.is_set():
        logger.debug("Second interrupt, exiting")
        sys.exit(1)
    logger.debug("Interrupt received, finishing current query")
    _stop.set()
    print("\nStopping after the current query (Ctrl+C again to exit now)")


def setup_logging(verbose: bool = False, level: Optional[str] = None) -> None:
    """Send log records to stderr at DEBUG when verbose, else the configured level."""
    name = "DEBUG" if verbose else (level or config.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def load_tool_object(spec: str) -> object:
    """
    Import the object named by ``module:attribute``.

    Classes are instantiated with no arguments so their bound methods
    can be registered.

    Raises:
        ValueError: The spec is malformed or the attribute is missing.
        ImportError: The module cannot be imported.
    """
    module_name, _, attr = spec.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Tool spec must look like 'module:attribute', got '{spec}'")
    module = importlib.import_module(module_name)
    if not hasattr(module, attr):
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'")
    target = getattr(module, attr)
    return target() if inspect.isclass(target) else target


def print_tools(agent: ToolAgent) -> None:
    functions = agent.registry.all_functions()
    if not functions:
        print("\nNo functions registered (start with --tools module:attribute).\n")
        return
    print(f"\n{len(functions)} function(s):")
    width = max(len(entry.name) for entry in functions)
    for entry in functions:
        print(f"  {entry.name.ljust(width)}  {entry.description or ''}".rstrip())
    print()


def print_history(agent: ToolAgent) -> None:
    messages = agent.messages
    if not messages:
        print("\nNo messages yet.\n")
        return

    print(f"\n{RULE}")
    for number, message in enumerate(messages, start=1):
        header = f"[{number}] {message.role.value}"
        if message.role == Role.TOOL:
            header += f" -> {message.tool_call_id}"
        print(header)
        for call in message.tool_calls:
            print(f"    calls {call.function_name}({call.raw_arguments}) as {call.id}")
        if message.content:
            text = message.content
            print(f"    {text[:200]}{'...' if len(text) > 200 else ''}")
    print(f"{RULE}\n")


class InteractiveCLI:
    """Read-eval-print loop around a ToolAgent."""

    def __init__(self, agent: ToolAgent, verbose: bool = False):
        self.agent = agent
        self.verbose = verbose
        self._commands: dict[str, Callable[[], Optional[bool]]] = {
            "/help": lambda: print(HELP_TEXT),
            "/tools": lambda: print_tools(self.agent),
            "/history": lambda: print_history(self.agent),
            "/clear": self.clear_history,
            "/verbose": self.toggle_verbose,
            "/quit": lambda: False,
            "/exit": lambda: False,
        }

    def toggle_verbose(self) -> None:
        self.verbose = not self.verbose
        logging.getLogger().setLevel(logging.DEBUG if self.verbose else logging.INFO)
        print(f"\nDebug logging {'on' if self.verbose else 'off'}\n")

    def clear_history(self) -> None:
        self.agent.clear_conversation_history()
        print("\nConversation cleared.\n")

    def process_query(self, query: str) -> bool:
        """Send one message and print the answer.

        Agent errors are printed and the loop continues; other exceptions
        propagate.

        Returns:
            False when the loop should stop.
        """
        try:
            answer = self.agent.send_message(query)
        except KeyboardInterrupt:
            _stop.set()
            print("\nInterrupted.\n")
            return False
        except AgentError as e:
            print(f"\nError: {e}\n")
            print("See /history for the failing tool call.\n")
            return True

        print(f"\n{answer}\n")
        result = self.agent.last_result
        if result is not None:
            used = ", ".join(result.tools_used) or "none"
            print(f"[{result.rounds} round(s), tools: {used}]\n")
        return not _stop.is_set()

    def handle_command(self, command: str) -> bool:
        """Run a slash command. Returns False when the loop should stop."""
        action = self._commands.get(command.lower())
        if action is None:
            print(f"\nUnknown command: {command} (try /help)\n")
            return True
        if action() is False:
            print("\nBye.\n")
            return False
        return True

    def run(self) -> None:
        print("tool-agent: chat with a model that can call your Python functions")
        print(HELP_TEXT)

        while not _stop.is_set():
            try:
                line = input(">>> ").strip()
            except EOFError:
                print("\nBye.\n")
                return
            except KeyboardInterrupt:
                if _stop.is_set():
                    return
                print("\n(/quit to leave)\n")
                continue

            if not line:
                continue
            handler = self.handle_command if line.startswith("/") else self.process_query
            if not handler(line):
                return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tool-agent",
        description="Chat with a model that can call local Python functions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --tools mypkg.tools:Calculator
  %(prog)s --tools mypkg.tools:Calculator -q "What is 5 + 3?"
  %(prog)s --config config/config.yaml --transport openai
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("-q", "--query", help="Send one message, print the answer and exit")
    parser.add_argument(
        "--model", help=f"Model identifier (default: AGENT_MODEL or {config.agent.model})"
    )
    parser.add_argument(
        "--base-url",
        help=f"Endpoint base URL (default: AGENT_BASE_URL or {config.agent.base_url})",
    )
    parser.add_argument(
        "--transport",
        choices=["http", "openai"],
        help="How to reach the endpoint (default: AGENT_TRANSPORT or http)",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--tools",
        action="append",
        default=[],
        metavar="MODULE:ATTR",
        help="Register the public methods of this object; repeatable",
    )
    parser.add_argument(
        "--positional-names",
        action="store_true",
        help="Expose parameters as arg0, arg1, ... instead of their Python names",
    )
    parser.add_argument(
        "--json", action="store_true", help="With -q, print answer and history as JSON"
    )
    return parser


def create_agent(args: argparse.Namespace) -> ToolAgent:
    """Build the agent; flags override the config file, which overrides the environment."""
    if args.config:
        app_config = load_app_config(args.config)
        agent = ToolAgent(
            api_key=app_config.agent.api_key or config.agent.api_key,
            model=args.model or app_config.agent.model,
            base_url=args.base_url or app_config.agent.base_url,
            max_rounds=app_config.agent.max_rounds,
            transport_type=args.transport or app_config.transport.type.value,
            timeout=app_config.transport.timeout,
        )
    else:
        agent = ToolAgent(
            api_key=config.agent.api_key,
            model=args.model or config.agent.model,
            base_url=args.base_url,
            max_rounds=config.agent.max_rounds,
            transport_type=args.transport,
        )

    for spec in args.tools:
        names = agent.register_methods(load_tool_object(spec), args.positional_names)
        logger.info("Registered from %s: %s", spec, ", ".join(names) or "nothing")
    return agent


def log_level_for(args: argparse.Namespace) -> Optional[str]:
    """Logging level from the --config file, if one was given."""
    return load_app_config(args.config).log_level if args.config else None


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        setup_logging(args.verbose, log_level_for(args))
    except (ValueError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    signal.signal(signal.SIGINT, _on_sigint)

    try:
        agent = create_agent(args)
    except ValidationError as e:
        print(f"Error: {e}. Set OPENAI_API_KEY or agent.api_key in the config file.")
        sys.exit(1)
    except (ValueError, ImportError, FileNotFoundError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    with agent:
        if not args.query:
            InteractiveCLI(agent, verbose=args.verbose).run()
            return
        try:
            answer = agent.send_message(args.query)
        except AgentError as e:
            print(f"Error: {e}")
            sys.exit(1)
        if args.json:
            print(
                json.dumps(
                    {
                        "query": args.query,
                        "answer": answer,
                        "messages": [m.to_dict() for m in agent.messages],
                    },
                    indent=2,
                )
            )
        else:
            print(answer)


if __name__ == "__main__":
    main()
