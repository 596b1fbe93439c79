"""
TL866 Firmware Tool CLI

Command-line interface for inspecting update.dat, extracting and re-keying
firmware, and editing the serial record of a flash dump.
"""

import sys
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.logging import RichHandler

from tl866_firmware.core.parsing import (
    parse_int as _parse_int_core,
    parse_variant as _parse_variant_core,
)
from tl866_firmware.core.results import OperationResult
from tl866_firmware.core.actions import (
    inspect_update,
    extract_firmware,
    decrypt_firmware_file,
    encrypt_firmware_file,
    read_serial,
    set_serial,
    identify_bootloader,
)
from tl866_firmware.variants import DeviceVariant

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
)
logger = logging.getLogger("tl866_firmware")

# Setup Rich console
console = Console()

app = typer.Typer(help="TL866A/CS firmware tool - update.dat decoding and re-keying")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Global options."""
    if verbose:
        logger.setLevel(logging.DEBUG)


def print_header(text: str) -> None:
    """Print fancy header."""
    console.print(Panel(text, expand=False, style="bold blue"))


def print_success(text: str) -> None:
    """Print success message."""
    console.print(f"✓ {text}", style="green")


def print_warning(text: str) -> None:
    """Print warning message."""
    console.print(f"⚠️  {text}", style="yellow")


def print_error(text: str) -> None:
    """Print error message."""
    console.print(f"❌ {text}", style="red")


def parse_int(value: Optional[str], label: str) -> Optional[int]:
    """
    Parse an integer option, converting ValueError to typer.BadParameter.
    """
    try:
        return _parse_int_core(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid {label}: {value}")


def parse_variant(value: str) -> DeviceVariant:
    """
    Parse a variant option, converting ValueError to typer.BadParameter.
    """
    try:
        return _parse_variant_core(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def finish(result: OperationResult) -> None:
    """Print warnings/errors from a result and exit non-zero on failure."""
    for warning in result.warnings:
        print_warning(warning)
    if not result.ok:
        for error in result.errors:
            print_error(error)
        raise typer.Exit(code=1)
    if result.output:
        print_success(f"Wrote {result.bytes_len:,} bytes to {result.output}")


@app.command("info")
def info_cmd(
    update_dat: str = typer.Argument(..., help="Path to update.dat"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON for scripting"),
) -> None:
    """Validate update.dat and show version, erase parameters and CRCs."""
    result = inspect_update(update_dat)
    if output_json:
        console.print_json(json.dumps(result.to_dict()))
        if not result.ok:
            raise typer.Exit(code=1)
        return

    print_header("Update Package")
    if result.ok:
        table = Table(title=f"update.dat version {result.metadata['version']}")
        table.add_column("Variant", style="cyan")
        table.add_column("Erase", style="green")
        table.add_column("CRC-32", style="yellow")
        table.add_column("SHA-256", style="dim")
        for variant in DeviceVariant:
            entry = result.metadata[variant.label]
            table.add_row(
                variant.label,
                f"0x{entry['erase']:02X}",
                entry["crc32"],
                result.hashes[f"{variant.label} sha256"][:16] + "...",
            )
        console.print(table)
    finish(result)


@app.command("extract")
def extract_cmd(
    update_dat: str = typer.Argument(..., help="Path to update.dat"),
    output: str = typer.Option(..., "--output", "-o", help="Output file"),
    variant: str = typer.Option("A", "--variant", "-t", help="Firmware variant: A or CS"),
    key: Optional[str] = typer.Option(None, "--key", "-k", help="Encrypt with this variant's key"),
    decrypt: bool = typer.Option(False, "--decrypt", "-d", help="Write decrypted (flashable) firmware"),
) -> None:
    """Extract one firmware image from update.dat, optionally re-keyed or decrypted."""
    fw_variant = parse_variant(variant)
    fw_key = parse_variant(key) if key else None
    if decrypt and fw_key is not None:
        raise typer.BadParameter("--key cannot be combined with --decrypt")
    result = extract_firmware(update_dat, fw_variant, output, key=fw_key, decrypt=decrypt)
    finish(result)


@app.command("decrypt")
def decrypt_cmd(
    image: str = typer.Argument(..., help="Encrypted firmware image (0x25D00 bytes)"),
    output: str = typer.Option(..., "--output", "-o", help="Output file"),
) -> None:
    """Decrypt an encrypted firmware image using the key table it carries."""
    finish(decrypt_firmware_file(image, output))


@app.command("encrypt")
def encrypt_cmd(
    plaintext: str = typer.Argument(..., help="Decrypted firmware (0x1E400 bytes)"),
    update_dat: str = typer.Option(..., "--update", "-u", help="update.dat providing the key table"),
    output: str = typer.Option(..., "--output", "-o", help="Output file"),
    key: str = typer.Option("A", "--key", "-k", help="Key variant: A or CS"),
) -> None:
    """Encrypt decrypted firmware with a key table from update.dat."""
    finish(encrypt_firmware_file(plaintext, update_dat, parse_variant(key), output))


@app.command("serial-show")
def serial_show_cmd(
    dump: str = typer.Argument(..., help="Flash dump or firmware image"),
) -> None:
    """Show the device code and serial number stored in a flash dump."""
    result = read_serial(dump)
    if result.ok:
        table = Table(title="Serial Record")
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="green")
        table.add_row("Device code", repr(result.metadata["device_code"]))
        table.add_row("Serial number", repr(result.metadata["serial_number"]))
        table.add_row("Checksum", "ok" if result.metadata["valid"] else "bad")
        console.print(table)
    finish(result)


@app.command("serial-set")
def serial_set_cmd(
    dump: str = typer.Argument(..., help="Flash dump to modify"),
    device_code: str = typer.Option(..., "--device-code", "-c", help="Device code (max 8 bytes)"),
    serial_number: str = typer.Option(..., "--serial", "-s", help="Serial number (max 24 bytes)"),
    output: str = typer.Option(..., "--output", "-o", help="Output file"),
    max_attempts: Optional[str] = typer.Option(None, "--max-attempts", help="Cap on checksum re-rolls"),
) -> None:
    """Write a copy of a flash dump with a new serial record."""
    attempts = parse_int(max_attempts, "max attempts")
    finish(set_serial(dump, device_code, serial_number, output, max_attempts=attempts))


@app.command("bootloader")
def bootloader_cmd(
    dump: str = typer.Argument(..., help="Flash dump"),
) -> None:
    """Identify the bootloader variant of a flash dump."""
    result = identify_bootloader(dump)
    if result.ok:
        print_success(f"Bootloader: {result.variant}")
    finish(result)


def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        sys.exit(0)


if __name__ == "__main__":
    main()
