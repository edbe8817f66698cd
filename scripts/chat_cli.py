#!/usr/bin/env python3
"""Interactive chat CLI for trying out the preprocessing proxy."""

import sys

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt


class ChatCLI:
    """Interactive chat interface that talks to the proxy."""

    def __init__(self, base_url: str = "http://localhost:8000", model: str = "gpt-4o"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.model = model
        self.messages: list[dict] = []
        self.console = Console()
        self.client = httpx.Client(timeout=60.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]Chat Preprocessing Proxy - Interactive Chat[/bold blue]\n"
                "Type your messages to chat through the proxy.\n"
                "Commands: /help, /tokens, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the proxy at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to proxy[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/tokens":
                    self._show_token_count()
                    continue
                elif user_input.lower() == "/clear":
                    self.messages = []
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                self.messages.append({"role": "user", "content": user_input})
                response = self._send_messages()
                if response:
                    self._display_response(response)
                else:
                    self.messages.pop()

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the proxy."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _send_messages(self) -> dict | None:
        """Send the conversation to the proxy."""
        try:
            self.console.print("[dim]💭 Thinking...[/dim]", end="")

            response = self.client.post(
                f"{self.base_url}/v1/chat/completions",
                json={"model": self.model, "messages": self.messages},
            )

            # Clear the "thinking" message
            self.console.print("\r" + " " * 20 + "\r", end="\n")

            if response.status_code == 200:
                return response.json()

            message = response.json().get("error", {}).get("message", response.text)
            self.console.print(f"[red]❌ API Error: {response.status_code} - {message}[/red]")
            return None

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _display_response(self, response: dict) -> None:
        """Display the assistant's reply and keep it in the history."""
        choices = response.get("choices") or [{}]
        assistant_text = choices[0].get("message", {}).get("content") or "No response"
        self.messages.append({"role": "assistant", "content": assistant_text})

        self.console.print(
            Panel(
                Markdown(assistant_text),
                title=f"[bold green]🤖 {response.get('model', self.model)}[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_token_count(self) -> None:
        """Show the input/output token split of the current conversation."""
        response = self.client.post(
            f"{self.base_url}/v1/chat/completions/token-count",
            json={"model": self.model, "messages": self.messages},
        )
        counts = response.json()
        self.console.print(
            Panel(
                f"Input: [bold]{counts.get('input', 0)}[/bold]\nOutput: [bold]{counts.get('output', 0)}[/bold]",
                title="[yellow]🔢 Tokens[/yellow]",
                border_style="yellow",
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /tokens - Show the token count of the conversation so far
• /clear - Clear the conversation and start over
• /quit or /exit - Exit the chat

[bold]Inlining files:[/bold]
Put file_path:/absolute/path/to/file on its own line and the proxy
replaces it with the file's content before forwarding.
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    model = sys.argv[2] if len(sys.argv) > 2 else "gpt-4o"

    chat = ChatCLI(base_url, model)
    chat.start()


if __name__ == "__main__":
    main()
