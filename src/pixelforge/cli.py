"""Command-line interface for PixelForge.

Provides commands for listing animation presets, previewing built
prompts, and running sprite, scene and spritesheet generations against
the configured providers with results written to a local directory.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.table import Table

from pixelforge.artifacts import ArtifactPipeline, LocalBlobStore
from pixelforge.config import PlatformConfig, load_platform_config
from pixelforge.errors import PixelForgeError
from pixelforge.logging import setup_logging
from pixelforge.models import (
    GenerationKind,
    GenerationRequest,
    NamingContext,
    ProviderCredentials,
    ProviderName,
    SpritesheetRequest,
)
from pixelforge.orchestrator import GenerationOrchestrator
from pixelforge.prompts import build_prompt
from pixelforge.providers.prediction import PredictionClient
from pixelforge.spritesheet import SpritesheetGenerator, get_animation_presets

console = Console()

LOCAL_OWNER = "local"


def _setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    if verbose:
        setup_logging(level=logging.DEBUG, verbose=True)
    else:
        setup_logging(level=logging.INFO)


def _load_config(env_file: Path | None, config_path: Path | None) -> PlatformConfig:
    return load_platform_config(env_file=env_file, config_path=config_path)


def _request_options(func):
    """Shared prompt-shaping options for ``generate`` and ``prompt``."""
    options = [
        click.option(
            "--kind",
            type=click.Choice(["sprite", "scene"]),
            default="sprite",
            show_default=True,
            help="Kind of artwork to generate",
        ),
        click.option("--style", default="pixel_art", show_default=True, help="Art style"),
        click.option(
            "--aspect-ratio", default="1:1", show_default=True, help="Aspect ratio key"
        ),
        click.option("--viewpoint", default="front", show_default=True, help="Camera viewpoint"),
        click.option(
            "--color",
            "colors",
            multiple=True,
            help="Palette color (repeat for several)",
        ),
        click.option("--dimensions", help="Explicit target size as WxH"),
        click.option(
            "--sprite-type",
            type=click.Choice(["character", "object"]),
            default="character",
            show_default=True,
        ),
        click.option(
            "--scene-type",
            type=click.Choice(["environment", "indoor", "outdoor"]),
            default="environment",
            show_default=True,
        ),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _config_options(func):
    func = click.option(
        "--config",
        "config_path",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="YAML file whose 'platform' section overrides the environment",
    )(func)
    func = click.option(
        "--env-file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Optional .env file with provider credentials",
    )(func)
    return func


@click.group()
@click.version_option(package_name="pixelforge")
def main() -> None:
    """PixelForge: AI game art generation orchestrator."""
    pass


@main.command()
def presets() -> None:
    """List the spritesheet animation presets.

    Example:

        \b
        pixelforge presets
    """
    table = Table(title="Animation presets")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Name")
    table.add_column("Frame size", justify="right")
    table.add_column("Frames", justify="right")
    table.add_column("Recommended", justify="center")
    table.add_column("Description")
    for preset in get_animation_presets():
        table.add_row(
            preset.id,
            preset.name,
            f"{preset.width}x{preset.height}",
            str(preset.frame_count),
            "✓" if preset.recommended else "",
            preset.description,
        )
    console.print(table)


@main.command()
@click.argument("prompt_text", metavar="PROMPT")
@_request_options
def prompt(
    prompt_text: str,
    kind: str,
    style: str,
    aspect_ratio: str,
    viewpoint: str,
    colors: tuple[str, ...],
    dimensions: str | None,
    sprite_type: str,
    scene_type: str,
) -> None:
    """Print the deterministic prompt built for PROMPT.

    Example:

        \b
        pixelforge prompt "a knight with a red cape" --viewpoint side
    """
    try:
        request = GenerationRequest(
            kind=GenerationKind(kind),
            prompt=prompt_text,
            style=style,
            aspect_ratio=aspect_ratio,
            viewpoint=viewpoint,
            colors=list(colors),
            dimensions=dimensions,
            sprite_type=sprite_type,
            scene_type=scene_type,
        )
    except ValueError as e:
        console.print(f"[bold red]✗[/] Invalid request: {e}")
        sys.exit(2)
    click.echo(build_prompt(request))


@main.command()
@click.argument("prompt_text", metavar="PROMPT")
@_request_options
@click.option("--quantity", "-n", type=int, default=1, show_default=True, help="Images (1-4)")
@click.option("--reference-image", help="Reference image URL or data URL")
@click.option("--pose-image", help="Pose image URL or data URL (uses the edit model)")
@click.option("--api-key", envvar="PIXELFORGE_API_KEY", help="Your own provider key")
@click.option(
    "--provider",
    type=click.Choice([p.value for p in ProviderName]),
    default=ProviderName.REPLICATE.value,
    show_default=True,
    help="Provider your --api-key belongs to",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("output"),
    show_default=True,
    help="Directory generated images are written to",
)
@_config_options
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def generate(
    prompt_text: str,
    kind: str,
    style: str,
    aspect_ratio: str,
    viewpoint: str,
    colors: tuple[str, ...],
    dimensions: str | None,
    sprite_type: str,
    scene_type: str,
    quantity: int,
    reference_image: str | None,
    pose_image: str | None,
    api_key: str | None,
    provider: str,
    output: Path,
    env_file: Path | None,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Generate sprite or scene images for PROMPT.

    Example:

        \b
        pixelforge generate "a knight with a red cape" \\
            --aspect-ratio 2:3 --color "#ff0000" --quantity 2 \\
            --output output/knight
    """
    _setup_logging(verbose)

    try:
        config = _load_config(env_file, config_path)
        request = GenerationRequest(
            kind=GenerationKind(kind),
            prompt=prompt_text,
            style=style,
            aspect_ratio=aspect_ratio,
            viewpoint=viewpoint,
            colors=list(colors),
            dimensions=dimensions,
            quantity=quantity,
            reference_image=reference_image,
            pose_image=pose_image,
            sprite_type=sprite_type,
            scene_type=scene_type,
        )
        credentials = ProviderCredentials(api_key=api_key, provider=ProviderName(provider))
        urls = asyncio.run(_run_generate(config, request, credentials, output))
    except PixelForgeError as e:
        console.print(f"[bold red]✗[/] Generation failed: {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[bold red]✗[/] Invalid request: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]⚠[/] Generation interrupted by user")
        sys.exit(130)

    for url in urls:
        console.print(f"[bold green]✓[/] {url}")


async def _run_generate(
    config: PlatformConfig,
    request: GenerationRequest,
    credentials: ProviderCredentials,
    output: Path,
) -> list[str]:
    async with GenerationOrchestrator(config) as orchestrator:
        with console.status("[bold blue]Generating..."):
            result = await orchestrator.generate_images(request, credentials)
    if not result.success:
        raise PixelForgeError(result.error or "Generation failed")

    pipeline = ArtifactPipeline(LocalBlobStore(output))
    naming = NamingContext(owner_id=LOCAL_OWNER, asset_type=request.kind.value)
    console.print(
        f"[bold green]✓[/] {len(result.images)} image(s) from [bold]{result.provider}[/]"
    )
    return await pipeline.persist_all(result.images, naming)


@main.command()
@click.argument("image_url")
@click.option("--preset", "preset_id", required=True, help="Animation preset id")
@click.option("--prompt", "custom_prompt", help="Override the preset's default prompt")
@click.option("--width", type=int, help="Override the preset frame width")
@click.option("--height", type=int, help="Override the preset frame height")
@click.option("--seed", type=int, help="Fixed seed (random when omitted)")
@click.option("--api-key", envvar="PIXELFORGE_API_KEY", help="Your own provider token")
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("output"),
    show_default=True,
    help="Directory the spritesheet is written to",
)
@_config_options
@click.option("--verbose", "-v", is_flag=True, help="Enable detailed logging")
def spritesheet(
    image_url: str,
    preset_id: str,
    custom_prompt: str | None,
    width: int | None,
    height: int | None,
    seed: int | None,
    api_key: str | None,
    output: Path,
    env_file: Path | None,
    config_path: Path | None,
    verbose: bool,
) -> None:
    """Generate a spritesheet for the character at IMAGE_URL.

    Example:

        \b
        pixelforge spritesheet https://example.com/knight.png \\
            --preset four_angle_walking --output output/knight
    """
    _setup_logging(verbose)

    try:
        config = _load_config(env_file, config_path)
        token = api_key or config.replicate_api_token
        if not token:
            console.print(
                "[bold red]✗[/] No API token configured. "
                "Set REPLICATE_API_TOKEN or pass --api-key."
            )
            sys.exit(1)
        request = SpritesheetRequest(
            character_image_url=image_url,
            preset_id=preset_id,
            custom_prompt=custom_prompt,
            custom_width=width,
            custom_height=height,
            seed=seed,
        )
        url = asyncio.run(_run_spritesheet(config, request, token, output))
    except PixelForgeError as e:
        console.print(f"[bold red]✗[/] Spritesheet generation failed: {e}")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[bold red]✗[/] Invalid request: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        console.print("\n[bold yellow]⚠[/] Generation interrupted by user")
        sys.exit(130)

    console.print(f"[bold green]✓[/] Spritesheet saved: [bold]{url}[/]")


async def _run_spritesheet(
    config: PlatformConfig,
    request: SpritesheetRequest,
    token: str,
    output: Path,
) -> str:
    async with httpx.AsyncClient(timeout=config.request_timeout) as http:
        client = PredictionClient(
            config.replicate_base_url,
            poll_interval=config.poll_interval,
            max_wait=config.max_wait,
            http_client=http,
        )
        generator = SpritesheetGenerator(client)
        with console.status("[bold blue]Generating spritesheet..."):
            result = await generator.generate(request, token)
        if not result.success or not result.spritesheet_url:
            raise PixelForgeError(result.error or "Spritesheet generation failed")

        console.print(
            f"  {result.frame_count} frames, {result.frame_width}x"
            f"{result.frame_height}, {result.layout.value} layout"
        )
        pipeline = ArtifactPipeline(LocalBlobStore(output), http_client=http)
        naming = NamingContext(
            owner_id=LOCAL_OWNER, asset_type="animation", label=request.preset_id
        )
        return await pipeline.persist_remote(result.spritesheet_url, naming)
