# cli.py - interactive storefront terminal
import os
import sys
from datetime import datetime
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.text import Text
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.client import StoreClient
from sdk.cart import LocalCart

console = Console()
c = StoreClient(base_url=os.getenv("STOREFRONT_URL", "http://127.0.0.1:10000"))
cart = LocalCart(os.getenv("STOREFRONT_CART", ".storefront_cart.json"))
CURRENCY = os.getenv("STOREFRONT_CURRENCY", "₹")

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


def money(value: Any) -> str:
    return f"{CURRENCY}{float(value or 0):.2f}"


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Products Catalog",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=6)
    table.add_column("Name", style="bold", width=34)
    table.add_column("Price", justify="right", width=12)
    table.add_column("MRP", justify="right", width=12)
    table.add_column("Stock", justify="right", width=8)
    table.add_column("Category", width=12)

    for p in products:
        original = p.get("originalPrice")
        table.add_row(
            str(p.get("id", "N/A")),
            p.get("name", "N/A"),
            money(p.get("price")),
            f"[strike]{money(original)}[/strike]" if original else "-",
            str(p.get("stock", 0)),
            p.get("category", "N/A"),
        )
    console.print(table)


def show_product_detail(p: Dict[str, Any]):
    images = ", ".join(p.get("images") or []) or "placeholder.jpg"
    body = Text()
    body.append(f"{p.get('name', 'N/A')}\n", style="bold")
    body.append(f"Price: {money(p.get('price'))}", style="green")
    if p.get("originalPrice"):
        body.append(f"  (was {money(p['originalPrice'])})", style="dim")
    body.append(f"\nCategory: {p.get('category', 'N/A')}   Stock: {p.get('stock', 0)}")
    body.append(f"\nImages: {images}", style="dim")
    console.print(Panel(body, title=f"ℹ️ Product #{p.get('id')}", border_style="cyan"))


def show_cart():
    items = cart.load()
    title = Text()
    title.append("🛒 Cart", style="bold")
    title.append(f" - Estimated total: {money(cart.total())}", style="bold green")

    if not items:
        console.print(Panel("Your cart is empty 🛍️", title=title, style="blue"))
        return

    table = Table(box=box.ROUNDED, header_style="bold blue", show_lines=True)
    table.add_column("ID", style="dim", width=6)
    table.add_column("Product", style="bold", width=30)
    table.add_column("Qty", justify="right", width=8)
    table.add_column("Price", justify="right", width=12)
    table.add_column("Subtotal", justify="right", width=12)

    for it in items:
        table.add_row(
            str(it["productId"]),
            it.get("name", "Unknown"),
            str(it["quantity"]),
            money(it.get("price")),
            money(it.get("price", 0) * it["quantity"]),
        )
    console.print(Panel(table, title=title, border_style="blue"))


def show_order(order: Dict[str, Any]):
    table = Table(
        title=f"📋 Order #{order.get('id')} ({order.get('status', 'N/A')})",
        box=box.ROUNDED,
        header_style="bold yellow",
        title_style="bold yellow",
        show_lines=True
    )
    table.add_column("Product", width=34)
    table.add_column("Qty", justify="right", width=6)
    table.add_column("Unit", justify="right", width=12)
    table.add_column("Line total", justify="right", width=12)
    for it in order.get("items", []):
        table.add_row(it["name"], str(it["quantity"]), money(it["unitPrice"]), money(it["lineTotal"]))
    console.print(table)
    console.print(Panel.fit(
        f"[bold]{order.get('customerName')}[/bold]\n"
        f"{order.get('address')}\n"
        f"Email: {order.get('customerEmail') or 'N/A'}   Phone: {order.get('customerPhone') or 'N/A'}\n"
        f"Total: [bold green]{money(order.get('total'))}[/bold green]",
        title="Customer"
    ))


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner.
    Returns the result, or None after reporting the error.
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
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products, limit=100) or []
    ids = [str(p.get("id", "")) for p in product_cache]
    return WordCompleter([i for i in ids if i], ignore_case=True)


def find_cached_product(pid: int) -> Optional[Dict[str, Any]]:
    for p in product_cache:
        if p.get("id") == pid:
            return p
    return try_api(c.get_product, pid)


def ask_int(message: str, completer=None) -> Optional[int]:
    raw = prompt(f"{message} ", completer=completer, style=custom_style).strip()
    try:
        return int(raw)
    except ValueError:
        console.print("[red]Please enter a numeric id.[/red]")
        return None


def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🛍️ Storefront",
        "[bold blue]Shop from your terminal[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


# ---------------------------
# Checkout
# ---------------------------
def checkout():
    items = cart.order_items()
    if not items:
        console.print("[yellow]Cart is empty, nothing to order.[/yellow]")
        return
    show_cart()
    name = prompt("Your name: ", style=custom_style).strip()
    address = prompt("Shipping address: ", style=custom_style).strip()
    email = prompt("Email (optional): ", style=custom_style).strip() or None
    phone = prompt("Phone (optional): ", style=custom_style).strip() or None
    if not Confirm.ask("Place order (cash on delivery)?"):
        return

    resp = try_api(c.place_order, name, address, items, email, phone)
    if not resp:
        return
    if resp.get("success"):
        cart.clear()
        console.print(Panel.fit(
            f"[green]Order placed successfully![/green]\n"
            f"Order ID: [bold]{resp.get('orderId')}[/bold]",
            title="✅ Order Confirmation"
        ))
    else:
        console.print(Panel.fit(f"[red]Order failed:[/red] {resp.get('error', resp)}", title="❌ Order Failed"))


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache

    console.clear()
    console.print(create_header())
    product_cache = try_api(c.list_products, limit=100) or []

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "6", "✅ Checkout"),
            ("2", "ℹ️ Product details", "7", "📋 Look up order"),
            ("3", "🛒 Add to cart", "8", "💓 Server health"),
            ("4", "➖ Remove from cart", "9", "✉️ Send test email"),
            ("5", f"🛒 View cart ({cart.count()})", "q", "👋 Quit"),
        ]
        for row in options:
            menu_table.add_row(*row)
        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt(
            "\nChoose an option ",
            completer=WordCompleter([str(i) for i in range(1, 10)] + ["q", "quit", "exit"]),
            style=custom_style,
        ).strip()

        if choice == "1":
            category = prompt("Category (blank for all): ", style=custom_style).strip() or None
            products = try_api(c.list_products, category, 100, success_msg="Products loaded successfully")
            if products is not None:
                if not category:
                    product_cache = products
                show_products(products)

        elif choice == "2":
            pid = ask_int("Enter product ID", completer=get_product_completer())
            if pid is not None:
                resp = try_api(c.get_product, pid, success_msg=f"Product {pid} details loaded")
                if resp:
                    show_product_detail(resp)

        elif choice == "3":
            pid = ask_int("Enter product ID", completer=get_product_completer())
            if pid is None:
                continue
            product = find_cached_product(pid)
            if not product:
                continue
            qty = IntPrompt.ask("Enter quantity", default=1)
            cart.add(product["id"], product["name"], product["price"], max(1, qty))
            status_message = f"Added {qty} x {product['name']} to cart"
            show_cart()

        elif choice == "4":
            pid = ask_int("Enter product ID to remove")
            if pid is not None:
                cart.remove(pid)
                status_message = f"Product {pid} removed from cart"
                show_cart()

        elif choice == "5":
            show_cart()

        elif choice == "6":
            checkout()

        elif choice == "7":
            oid = ask_int("Enter order ID")
            if oid is not None:
                resp = try_api(c.get_order, oid, success_msg=f"Order {oid} loaded")
                if resp:
                    show_order(resp)

        elif choice == "8":
            resp = try_api(c.health)
            if resp:
                state = "[green]configured[/green]" if resp.get("emailConfigured") else "[red]not configured[/red]"
                console.print(Panel.fit(
                    f"Status: [bold]{resp.get('status')}[/bold]  Version: {resp.get('version')}\n"
                    f"Uptime: {resp.get('uptime')}s\n"
                    f"Email: {state} ({resp.get('emailProvider') or '-'})",
                    title="💓 Health"
                ))

        elif choice == "9":
            resp = try_api(c.test_email)
            if resp:
                ok = resp.get("success")
                console.print(show_status(resp.get("message") or resp.get("error", "Unknown response"), bool(ok)))

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Thank you for shopping with us! 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
