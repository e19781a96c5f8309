"""Collection-level access for tokens, stores and presets, scoped by user."""
from typing import Any, Dict, List

from ..errors import ConflictError, NotFoundError, ValidationError
from ..services.defaults import DefaultRecordMaintainer
from .json_store import JsonStore, utcnow_iso

TOKENS_COLLECTION = "api_tokens"
STORES_COLLECTION = "stores"
PRESETS_COLLECTION = "presets"
BLUEPRINTS_COLLECTION = "blueprints"
PRINT_PROVIDERS_COLLECTION = "print_providers"
PRINT_AREAS_COLLECTION = "print_areas"
USERS_COLLECTION = "users"
USER_SETTINGS_COLLECTION = "user_settings"
IMPORTS_COLLECTION = "imports"
IMPORT_EVENTS_COLLECTION = "import_events"
ASSETS_COLLECTION = "assets"

PROVIDERS = ("printify", "shopify")
PLACEMENT_KEYS = ("width", "height", "x", "y")


def check_provider(provider: str) -> str:
    if provider not in PROVIDERS:
        raise ValidationError("Invalid provider")
    return provider


class TokenRepository:
    def __init__(self, store: JsonStore):
        self.store = store
        self.defaults = DefaultRecordMaintainer(store, TOKENS_COLLECTION)

    def list(self, user_id: str, provider: str | None = None) -> List[Dict[str, Any]]:
        return self.store.find(TOKENS_COLLECTION, order_by="created_at", descending=True,
                               user_id=user_id, provider=provider)

    def get(self, user_id: str, token_id: str) -> Dict[str, Any]:
        return self.defaults.get_owned(user_id, token_id, "Token")

    def create(self, user_id: str, provider: str, token_ref: str, name: str | None = None,
               is_default: bool = False) -> Dict[str, Any]:
        check_provider(provider)
        fields = {"token_ref": token_ref, "name": name, "last_used_at": None}
        return self.defaults.create(user_id, provider, fields, requested_default=is_default)

    def update(self, user_id: str, token_id: str, name: str | None = None, token_ref: str | None = None,
               is_default: bool | None = None) -> Dict[str, Any]:
        patch = {}
        if name is not None:
            patch["name"] = name
        if token_ref is not None:
            patch["token_ref"] = token_ref
        if is_default is not None:
            patch["is_default"] = bool(is_default)
        return self.defaults.update(user_id, token_id, patch, "Token")

    def referencing_stores(self, user_id: str, token_id: str) -> List[Dict[str, Any]]:
        return self.store.find(STORES_COLLECTION, user_id=user_id, api_token=token_id)

    def delete(self, user_id: str, token_id: str) -> Dict[str, Any]:
        with self.store.transaction():
            self.get(user_id, token_id)
            users = self.referencing_stores(user_id, token_id)
            if users:
                names = ", ".join(s.get("name") or s["id"] for s in users)
                raise ConflictError(f"Token is used by {len(users)} store(s): {names}")
            return self.defaults.delete(user_id, token_id, "Token")

    def touch(self, user_id: str, token_id: str) -> Dict[str, Any]:
        self.get(user_id, token_id)
        rows = self.store.update(TOKENS_COLLECTION, {"last_used_at": utcnow_iso()},
                                 id=token_id, user_id=user_id)
        return rows[0]


class StoreRepository:
    """Shops of every provider live in one collection, tagged by ``provider``."""

    def __init__(self, store: JsonStore):
        self.store = store
        self.defaults = DefaultRecordMaintainer(store, STORES_COLLECTION)

    def list(self, user_id: str, provider: str | None = None) -> List[Dict[str, Any]]:
        return self.store.find(STORES_COLLECTION, order_by="created_at", descending=True,
                               user_id=user_id, provider=provider)

    def create(self, user_id: str, provider: str, name: str, shop_id: str, api_token: str,
               is_default: bool = False) -> Dict[str, Any]:
        check_provider(provider)
        fields = {"name": name, "shop_id": str(shop_id), "api_token": api_token}
        return self.defaults.create(user_id, provider, fields, requested_default=is_default)

    def update(self, user_id: str, store_id: str, name: str | None = None,
               is_default: bool | None = None) -> Dict[str, Any]:
        patch = {}
        if name is not None:
            patch["name"] = name
        if is_default is not None:
            patch["is_default"] = bool(is_default)
        return self.defaults.update(user_id, store_id, patch, "Store")

    def delete(self, user_id: str, store_id: str) -> Dict[str, Any]:
        return self.defaults.delete(user_id, store_id, "Store")


def validate_placements(placements) -> Dict[str, Dict[str, float]]:
    if not isinstance(placements, dict) or not placements:
        raise ValidationError("placements must be a non-empty mapping of print area to placement")
    out = {}
    for area, cfg in placements.items():
        if not isinstance(cfg, dict):
            raise ValidationError(f"placement for {area} must be an object")
        missing = [k for k in PLACEMENT_KEYS if k not in cfg]
        if missing:
            raise ValidationError(f"placement for {area} is missing {', '.join(missing)}")
        try:
            out[area] = {k: float(cfg[k]) for k in PLACEMENT_KEYS}
        except (TypeError, ValueError):
            raise ValidationError(f"placement for {area} must be numeric")
    return out


class PresetRepository:
    def __init__(self, store: JsonStore):
        self.store = store

    def _with_details(self, preset: Dict[str, Any]) -> Dict[str, Any]:
        bp = pp = None
        if preset.get("blueprint_id") is not None:
            bp = self.store.find_one(BLUEPRINTS_COLLECTION, id=preset["blueprint_id"])
        if preset.get("print_provider_id") is not None:
            pp = self.store.find_one(PRINT_PROVIDERS_COLLECTION, id=preset["print_provider_id"])
        out = dict(preset)
        out["blueprint"] = (
            {k: bp.get(k) for k in ("id", "title", "brand", "model", "images")} if bp else None
        )
        out["print_provider"] = (
            {k: pp.get(k) for k in ("id", "title", "location")} if pp else None
        )
        return out

    def list(self, user_id: str) -> List[Dict[str, Any]]:
        rows = self.store.find(PRESETS_COLLECTION, order_by="created_at", descending=True, user_id=user_id)
        return [self._with_details(p) for p in rows]

    def create(self, user_id: str, name: str, blueprint_id, print_provider_id, placements) -> Dict[str, Any]:
        now = utcnow_iso()
        return self.store.insert(PRESETS_COLLECTION, {
            "user_id": user_id,
            "name": name,
            "provider": "printify",
            "blueprint_id": blueprint_id,
            "print_provider_id": print_provider_id,
            "visibility": "private",
            "favorite": False,
            "placements": validate_placements(placements),
            "created_at": now,
            "updated_at": now,
        })

    def update(self, user_id: str, preset_id: str, **fields) -> Dict[str, Any]:
        patch = {k: v for k, v in fields.items() if v is not None}
        if "placements" in patch:
            patch["placements"] = validate_placements(patch["placements"])
        patch["updated_at"] = utcnow_iso()
        rows = self.store.update(PRESETS_COLLECTION, patch, id=preset_id, user_id=user_id)
        if not rows:
            raise NotFoundError("Preset not found or you do not have permission to update it")
        return rows[0]

    def delete(self, user_id: str, preset_id: str):
        if not self.store.delete_where(PRESETS_COLLECTION, id=preset_id, user_id=user_id):
            raise NotFoundError("Preset not found or you do not have permission to delete it")
