"""JSON-file-backed cart and voucher services."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from orderflow.application.ports import CartService, VoucherService
from orderflow.domain.exceptions import EntityNotFoundError, ValidationError
from orderflow.infrastructure.persistence.json_file import JsonFile


class JsonCartService(CartService):
    """Carts are ``{"user_id": ..., "items": [...]}`` rows."""

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def clear_cart(self, user_id: str) -> None:
        cart = self._file.find(lambda r: r["user_id"] == user_id)
        if cart is None:
            return
        cart["items"] = []
        cart["updated_at"] = datetime.now(timezone.utc).isoformat()
        self._file.upsert(cart, lambda r: r["user_id"] == user_id)


class JsonVoucherService(VoucherService):
    """Vouchers are ``{"id", "code", "usage_limit", "used_by": [...]}`` rows."""

    def __init__(self, file_path: Path) -> None:
        self._file = JsonFile(file_path)

    def mark_used(self, voucher_id: str, user_id: str, order_id: int) -> None:
        voucher = self._file.find(lambda r: r["id"] == voucher_id)
        if voucher is None:
            raise EntityNotFoundError(f"Voucher not found: '{voucher_id}'")

        used_by = voucher.setdefault("used_by", [])
        if any(u.get("order_id") == order_id for u in used_by):
            return
        limit = voucher.get("usage_limit")
        if limit is not None and len(used_by) >= limit:
            raise ValidationError(f"Voucher {voucher.get('code', voucher_id)} is used up")

        used_by.append(
            {
                "user_id": user_id,
                "order_id": order_id,
                "used_at": datetime.now(timezone.utc).isoformat(),
            }
        )
        self._file.upsert(voucher, lambda r: r["id"] == voucher_id)
