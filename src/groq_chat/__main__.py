"""Command-line example: send one prompt and print the answer."""

import asyncio
import logging
import sys

import click
import httpx

from .client import Client
from .config import load_config
from .errors import GroqError
from .models import ChatCompletionRequest, Message, ResponseFormat

DEFAULT_MODEL = "llama-3.1-8b-instant"


async def _run(client: Client, request: ChatCompletionRequest, stream: bool) -> None:
    async with client:
        if stream:
            async with client.create_chat_completion_stream(request) as chunks:
                async for chunk in chunks:
                    click.echo(chunk.content, nl=False)
            click.echo()
            return

        response = await client.create_chat_completion(request)
        if response.choices:
            click.echo(response.choices[0].message.content)
        else:
            click.echo("No response received from API", err=True)


@click.command()
@click.argument("prompt")
@click.option("--model", "-m", default=None, help="Model to use.")
@click.option("--system", "-s", multiple=True, help="System prompt; may be repeated.")
@click.option("--stream/--no-stream", default=False, help="Stream the answer.")
@click.option("--json", "json_mode", is_flag=True, help="Request a JSON object.")
@click.option("--max-tokens", type=int, default=None)
@click.option("--temperature", type=float, default=None)
@click.option("--config", "config_path", default=None, help="Path to a YAML config.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(prompt, model, system, stream, json_mode, max_tokens, temperature, config_path, verbose):
    """Send PROMPT to the Groq API and print the reply."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = load_config(config_path)
        client = Client.from_config(config)
    except GroqError as e:
        raise click.ClickException(str(e))

    for content in system:
        client.add_system_prompt(content)

    request = ChatCompletionRequest(
        model=model or config.get("default_model") or DEFAULT_MODEL,
        messages=[Message(role="user", content=prompt)],
        max_tokens=max_tokens,
        temperature=temperature,
        response_format=ResponseFormat(type="json_object") if json_mode else None,
    )

    try:
        asyncio.run(_run(client, request, stream))
    except (GroqError, httpx.HTTPError) as e:
        click.echo(f"Error creating chat completion: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
