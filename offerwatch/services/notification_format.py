"""Human-readable rendering of match notifications (Telegram Markdown)."""

from offerwatch.services.records import MatchNotification, MatchType


def format_notification(notification: MatchNotification) -> str:
    """Render a match as a multi-line Markdown message.

    Price, original price, discount and cashback lines are only shown when
    they carry information (> 0; original price only above current price).
    """
    lines = [
        "🎉 *Oferta Encontrada!*",
        "",
        f"📦 *Produto:* {notification.product_name}",
    ]

    if notification.price > 0:
        lines.append(f"💰 *Preço:* R$ {notification.price:.2f}")

    if notification.original_price > 0 and notification.original_price > notification.price:
        lines.append(f"~~R$ {notification.original_price:.2f}~~")

    if notification.discount_percentage > 0:
        lines.append(f"🔥 *Desconto:* {notification.discount_percentage}%")

    if notification.cashback_percentage > 0:
        lines.append(f"💸 *Cashback:* {notification.cashback_percentage}%")

    lines.append("")
    if notification.match_type == MatchType.PRICE:
        lines.append("✅ *Atingiu seu preço desejado!*")
    else:
        lines.append("✅ *Atingiu o desconto desejado!*")

    return "\n".join(lines)
