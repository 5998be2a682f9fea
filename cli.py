# cli.py
import os
import sys
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import requests
from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from sdk.pycatalog import CatalogClient

console = Console()
c = CatalogClient(base_url=os.getenv("CATALOG_API_URL", "http://127.0.0.1:8085"))

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Product Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=8)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Description", width=32)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Stock", justify="right", width=8)

    for p in sorted(products, key=lambda p: p.get("id", "")):
        stock = p.get("stock_available", 0)
        stock_style = "red" if stock == 0 else "green"
        table.add_row(
            p.get("id", "N/A"),
            p.get("name", "N/A"),
            p.get("description") or "",
            f"${Decimal(str(p.get('price', 0))):.2f}",
            f"[{stock_style}]{stock}[/{stock_style}]"
        )
    console.print(table)


def show_stock_result(resp: requests.Response):
    body = resp.json()
    if resp.status_code == 200:
        console.print(Panel.fit(f"[green]{body['message']}[/green]", title=f"📦 {body['product_id']}"))
    else:
        console.print(Panel.fit(f"[red]{body.get('detail', body)}[/red]", title=f"❌ HTTP {resp.status_code}"))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with exception handling
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the raw result, or None after printing the error.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except requests.exceptions.HTTPError as e:
        detail = e.response.text if e.response is not None else e
        status_message = f"Error: {detail}"
        console.print(show_status(status_message, False))
        return None
    except requests.exceptions.RequestException as e:
        status_message = f"Error: {e}"
        console.print(show_status(status_message, False))
        return None


# ---------------------------
# Input helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products) or []
    return WordCompleter([p["id"] for p in product_cache], ignore_case=True)


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_price(message: str, default: str = "10.00") -> Decimal:
    while True:
        raw = Prompt.ask(message, default=default)
        try:
            return Decimal(raw)
        except InvalidOperation:
            console.print("[red]Please enter a valid amount.[/red]")


def ask_product_fields(current: Optional[Dict[str, Any]] = None):
    current = current or {}
    name = prompt_with_autocomplete("Product name", default=current.get("name", ""))
    description = prompt_with_autocomplete("Description", default=current.get("description") or "")
    price = ask_price("💰 Price", default=str(current.get("price", "10.00")))
    stock = IntPrompt.ask("📦 Stock available", default=current.get("stock_available", 0))
    return name, price, stock, description or None


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)
    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🗂️ Catalog SDK",
        "[bold blue]Product Catalog CLI[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())
    product_cache = try_api(c.list_products) or []

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        options = [
            ("1", "📦 List products", "5", "🗑️ Delete product"),
            ("2", "ℹ️ Get product by ID", "6", "➕ Add to stock"),
            ("3", "🆕 Create product", "7", "➖ Decrement stock"),
            ("4", "✏️ Update product", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 8)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.list_products, success_msg="Products loaded successfully")
            if products is not None:
                product_cache = products
                show_products(products)

        elif choice == "2":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            resp = try_api(c.get_product, pid, success_msg=f"Product {pid} details loaded")
            if resp:
                show_products([resp])

        elif choice == "3":
            name, price, stock, description = ask_product_fields()
            resp = try_api(c.create_product, name, price, stock, description,
                           success_msg=f"Product '{name}' created")
            if resp:
                show_products([resp])
                product_cache = try_api(c.list_products) or []

        elif choice == "4":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            current = try_api(c.get_product, pid)
            if current:
                name, price, stock, description = ask_product_fields(current)
                try_api(c.update_product, pid, name, price, stock, description,
                        success_msg=f"Product {pid} updated")
                product_cache = try_api(c.list_products) or []

        elif choice == "5":
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            if Confirm.ask(f"[red]Delete product {pid}?[/red]"):
                try_api(c.delete_product, pid, success_msg=f"Product {pid} deleted")
                product_cache = try_api(c.list_products) or []

        elif choice in ("6", "7"):
            pid = prompt_with_autocomplete("Enter product ID", completer=get_product_completer())
            qty = IntPrompt.ask("Quantity", default=1)
            fn = c.add_stock if choice == "6" else c.decrement_stock
            resp = try_api(fn, pid, qty)
            if resp is not None:
                show_stock_result(resp)

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Goodbye! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
