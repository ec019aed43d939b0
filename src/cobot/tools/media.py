"""Document, image and media conversion via pandoc, ImageMagick and FFmpeg."""

from __future__ import annotations

import asyncio
import logging
import shlex
import shutil
from pathlib import Path

from cobot.tools.base import BaseTool
from cobot.types.tools import ToolContext, ToolDef, ToolParam, ToolResult

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_S = 300
_MAX_BATCH_REPORT = 10


def split_io(args: list[str], ctx: ToolContext, output_flag: str | None = None) -> tuple[str, str] | None:
    """Pick the input and output paths out of a converter argument list.

    The input is the first positional argument naming an existing path (or
    the first positional if none exists). The output is the value following
    *output_flag*, or else the last positional after the input that looks like
    a file name (option values such as ``800x600`` have no suffix).
    """
    positional = [(i, a) for i, a in enumerate(args) if not a.startswith("-")]
    if output_flag is not None:
        flagged = {i + 1 for i, a in enumerate(args) if a == output_flag}
        positional = [(i, a) for i, a in positional if i not in flagged]
    if not positional:
        return None

    in_idx, input_file = next(
        ((i, a) for i, a in positional if ctx.resolve(a).exists()), positional[0],
    )

    if output_flag is not None and output_flag in args:
        pos = args.index(output_flag)
        if pos + 1 < len(args):
            return input_file, args[pos + 1]
        return None

    after = [a for i, a in positional if i > in_idx]
    if not after:
        return None
    named = [a for a in after if Path(a).suffix]
    return input_file, (named or after)[-1]


async def run_binary(argv: list[str], cwd: Path, timeout: float = _DEFAULT_TIMEOUT_S) -> tuple[int, str, str]:
    """Run *argv* without a shell and return ``(returncode, stdout, stderr)``."""
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd),
    )
    try:
        out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        try:
            proc.kill()
            await proc.wait()
        except ProcessLookupError:
            pass
        raise
    return (
        proc.returncode or 0,
        out.decode("utf-8", errors="replace"),
        err.decode("utf-8", errors="replace"),
    )


def _command_param(description: str) -> ToolParam:
    return ToolParam(name="command_string", type="string", description=description)


class ConverterTool(BaseTool):
    """Shared flow for single-input, single-output converter binaries."""

    binary: str = ""
    missing_binary_error: str = ""
    missing_input_error: str = "Error: Input file not found"
    usage: str = ""
    output_flag: str | None = None
    extra_args: tuple[str, ...] = ()
    failure_prefix: str = ""
    success_message: str = ""

    async def run(self, ctx: ToolContext, command_string: str) -> ToolResult:
        try:
            args = shlex.split(command_string)
        except ValueError as exc:
            return self._error(f"Error: Invalid command format - {exc}")

        io = split_io(args, ctx, self.output_flag)
        if io is None:
            return self._error(f"Error: Invalid command format. Expected: {self.usage}")
        input_file, output_file = io

        if not ctx.resolve(input_file).exists():
            return self._error(self.missing_input_error)
        if shutil.which(self.binary) is None:
            return self._error(self.missing_binary_error)

        argv = [self.binary, *self.extra_args, *args]
        logger.debug("running %s", argv)
        try:
            code, stdout, stderr = await run_binary(argv, ctx.cwd)
        except (OSError, TimeoutError) as exc:
            return self._error(f"{self.failure_prefix} - {str(exc) or 'timed out'}")

        output = f"stdout: {stdout}\nstderr: {stderr}"
        if code:
            return ToolResult.fail(
                f"{self.failure_prefix} - exit code {code}", message=output,
            )
        if ctx.resolve(output_file).exists():
            return self._ok(output, self.success_message.format(input=input_file, output=output_file))
        return ToolResult.fail(
            "Processing completed but output file may not be where expected",
            message=output,
        )


class ConvertDocumentTool(ConverterTool):
    binary = "pandoc"
    missing_binary_error = "Error: pandoc is not installed or not in PATH"
    usage = "pandoc [options] input_file -o output_file"
    output_flag = "-o"
    failure_prefix = "Error: Failed to convert document"
    success_message = "Document converted successfully from {input} to {output}"

    _DEFINITION = ToolDef(
        name="convert_document",
        description=(
            "Convert documents between formats using pandoc. Supports Markdown, HTML, PDF, "
            "DOCX, LaTeX, etc. Use this tool to convert .docx and other binary documents to "
            "markdown or plain text before using `open_file` tool. "
            'Syntax: {"command_string": "[options] [input file] -o [output file]"}'
        ),
        parameters=(_command_param(
            "Complete pandoc command string with input file, output file, and options. "
            "Check pandoc usage with `pandoc --help`"
        ),),
    )

    @property
    def definition(self) -> ToolDef:
        return self._DEFINITION


class ProcessImageTool(ConverterTool):
    binary = "magick"
    missing_binary_error = "Error: ImageMagick (magick) is not installed or not in PATH"
    missing_input_error = "Error: Input image file not found"
    usage = "magick [options] input_file output_file"
    failure_prefix = "Error: Failed to process image"
    success_message = "Image processed successfully: {input} to {output}"

    _DEFINITION = ToolDef(
        name="process_image",
        description=(
            "Process images using ImageMagick. Resize, convert formats, apply filters, etc. "
            'Example: {"command_string": "input.jpg output.png -resize 800x600 -quality 90"}'
        ),
        parameters=(_command_param(
            "Complete ImageMagick command string with input file, output file, and options. "
            "Check ImageMagick usage with `magick --help`"
        ),),
    )

    @property
    def definition(self) -> ToolDef:
        return self._DEFINITION


class ProcessMediaTool(ConverterTool):
    binary = "ffmpeg"
    missing_binary_error = "Error: FFmpeg is not installed or not in PATH"
    missing_input_error = "Error: Input media file not found"
    usage = "ffmpeg [options] -i input_file output_file"
    extra_args = ("-y",)
    failure_prefix = "Error: Failed to process media"
    success_message = "Media processed successfully: {input} to {output}"

    _DEFINITION = ToolDef(
        name="process_media",
        description=(
            "Process video and audio files using FFmpeg. Convert formats, extract audio, "
            "trim, resize, change quality, etc. "
            'Example: {"command_string": "-i input.mp4 -vn -acodec copy output.mp3"}'
        ),
        parameters=(_command_param(
            "Complete FFmpeg command string with options, input file, and output file. "
            "Check FFmpeg usage with `ffmpeg -h`"
        ),),
    )

    @property
    def definition(self) -> ToolDef:
        return self._DEFINITION


_BATCH_DEFINITION = ToolDef(
    name="batch_process_images",
    description=(
        "Process multiple images with the same operation using ImageMagick. "
        'Example: {"command_string": "images/*.jpg thumbnails -resize 200x200 -quality 85"}'
    ),
    parameters=(_command_param(
        "Complete ImageMagick batch command string with input pattern, output directory, "
        "and options. Check ImageMagick usage with `magick --help`"
    ),),
)


class BatchProcessImagesTool(BaseTool):
    """Applies one ImageMagick operation to every file matching a glob."""

    @property
    def definition(self) -> ToolDef:
        return _BATCH_DEFINITION

    async def run(self, ctx: ToolContext, command_string: str) -> ToolResult:
        try:
            args = shlex.split(command_string)
        except ValueError as exc:
            return self._error(f"Error: Invalid command format - {exc}")

        positional = [i for i, a in enumerate(args) if not a.startswith("-")]
        if len(positional) < 2:
            return self._error(
                "Error: Invalid command format. Expected: magick [options] input_pattern output_dir"
            )
        pattern, output_dir = args[positional[0]], args[positional[1]]
        options = [a for i, a in enumerate(args) if i not in (positional[0], positional[1])]

        if shutil.which("magick") is None:
            return self._error("Error: ImageMagick (magick) is not installed or not in PATH")

        out_path = ctx.resolve(output_dir)
        out_path.mkdir(parents=True, exist_ok=True)

        if Path(pattern).is_absolute():
            files = sorted(Path(pattern).parent.glob(Path(pattern).name))
        else:
            files = sorted(ctx.cwd.glob(pattern))
        files = [f for f in files if f.is_file()]
        if not files:
            return self._error("Error: No files found matching the input pattern")

        done: list[str] = []
        failed: list[str] = []
        for src in files:
            target = out_path / f"{src.stem}.png"
            try:
                code, _, stderr = await run_binary(["magick", str(src), *options, str(target)], ctx.cwd)
            except (OSError, TimeoutError) as exc:
                failed.append(f"{src}: {str(exc) or 'timed out'}")
                continue
            if code or not target.exists():
                failed.append(f"{src}: {stderr.strip() or f'exit code {code}'}")
            else:
                done.append(f"{src} -> {target}")

        summary = (
            f"Batch processing completed: {len(done)} files processed successfully, "
            f"{len(failed)} failed"
        )
        details = summary
        if done:
            details += "\n\nSuccessfully processed:\n" + "\n".join(done[:_MAX_BATCH_REPORT])
            if len(done) > _MAX_BATCH_REPORT:
                details += f"\n... and {len(done) - _MAX_BATCH_REPORT} more files"
        if failed:
            details += "\n\nErrors:\n" + "\n".join(failed[:_MAX_BATCH_REPORT])
            if len(failed) > _MAX_BATCH_REPORT:
                details += f"\n... and {len(failed) - _MAX_BATCH_REPORT} more errors"

        if failed:
            return ToolResult.fail(summary, message=details)
        return self._ok(details, summary)
