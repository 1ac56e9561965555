"""
Main CLI entry point for the reactor agent.

This module provides the command-line interface for talking to a ReAct
agent, interactively or with a single query.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from ..agent import ReActAgent
from ..config import AgentConfig, SUPPORTED_PROVIDERS
from ..factory import build_agent


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Reactor Agent CLI")

    # Options shared by every command
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--model", default=None, help="Model to use")
    common.add_argument("--provider", choices=SUPPORTED_PROVIDERS, default=None,
                        help="LLM provider")
    common.add_argument("--max-iters", type=int, default=None,
                        help="Maximum reasoning-acting iterations per reply")
    common.add_argument("--parallel", action="store_true", help="Run tool calls in parallel")
    common.add_argument("--verbose", action="store_true", help="Enable verbose output")
    common.add_argument("--env-file", default=None, help="Path of a .env file to load")

    # Add subparsers for different commands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Interactive mode parser
    subparsers.add_parser("interactive", parents=[common], help="Start an interactive session")

    # Single query parser
    query_parser = subparsers.add_parser("query", parents=[common], help="Process a single query")
    query_parser.add_argument("text", help="Query text to process")

    return parser


def build_config(parsed_args: argparse.Namespace) -> AgentConfig:
    """Load configuration from the environment, then apply command-line overrides."""
    config = AgentConfig.from_env(parsed_args.env_file)
    overrides = config.to_dict()
    if parsed_args.model:
        overrides["model_name"] = parsed_args.model
    if parsed_args.provider:
        overrides["llm_provider"] = parsed_args.provider
    if parsed_args.max_iters is not None:
        overrides["max_iters"] = parsed_args.max_iters
    if parsed_args.parallel:
        overrides["parallel_tool_calls"] = True
    if parsed_args.verbose:
        overrides["verbose"] = True
    return AgentConfig.from_dict(overrides)


def main(args: Optional[List[str]] = None) -> int:
    """ Main entry point for the CLI. """
    parser = build_parser()
    parsed_args = parser.parse_args(args)

    if not parsed_args.command:
        parser.print_help()
        return 1

    # Configure and initialize the agent
    try:
        agent = build_agent(build_config(parsed_args))
    except Exception as e:
        print(f"Error initializing agent: {e}")
        return 1

    # Execute the requested command
    try:
        if parsed_args.command == "interactive":
            return asyncio.run(run_interactive_mode(agent))
        elif parsed_args.command == "query":
            return asyncio.run(process_single_query(agent, parsed_args.text))
    finally:
        agent.toolkit.close()

    return 0


async def run_interactive_mode(agent: ReActAgent) -> int:
    """
    Run the agent in interactive mode.

    Args:
        agent: Initialized agent instance

    Returns:
        Exit code
    """
    print("Reactor Agent Interactive Mode")
    print("Type 'exit' or 'quit' to end the session")
    print()

    loop = asyncio.get_running_loop()
    while True:
        try:
            # Get user input without blocking the event loop
            user_input = await loop.run_in_executor(None, input, "You: ")

            # Check for exit command
            if user_input.lower() in ["exit", "quit"]:
                print("Goodbye!")
                break
            if not user_input.strip():
                continue

            # The agent prints its own replies
            await agent.reply(user_input)
            print()

        except (KeyboardInterrupt, EOFError):
            print("\nSession terminated by user")
            break
        except Exception as e:
            print(f"Error: {e}")

    return 0


async def process_single_query(agent: ReActAgent, query: str) -> int:
    """
    Process a single query and print the response.

    Args:
        agent: Initialized agent instance
        query: Query text to process

    Returns:
        Exit code
    """
    agent.disable_console_output = True
    try:
        response = await agent.reply(query)
    except Exception as e:
        print(f"Error: {e}")
        return 1

    print(response.get_text_content() or "")
    return 1 if response.metadata and response.metadata.get("error") else 0


if __name__ == "__main__":
    sys.exit(main())
