import asyncio
import functools
import json
import logging
from datetime import datetime, timezone

from aiohttp import web

from .errors import NotInitializedError, StoreError
from .handle import StoreHandle
from .models import Tag, Template

logger = logging.getLogger("TemplateVault")


def _json_response(obj, status=200):
    return web.Response(
        status=status,
        text=json.dumps(obj, ensure_ascii=False),
        content_type="application/json",
    )


def _bad_request(msg):
    return _json_response({"error": msg}, status=400)


def _message(msg):
    return _json_response({"message": msg})


def _store_error(exc):
    status = 503 if isinstance(exc, NotInitializedError) else 500
    return _json_response({"error": str(exc)}, status=status)


def _download_name(ext):
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return f"templatevault-export-{stamp}.{ext}"


async def _call(fn, *args, **kwargs):
    # Store calls block on sqlite; keep them off the event loop.
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))


async def _read_json(request):
    try:
        return await request.json(), None
    except Exception:
        return None, _bad_request("Invalid JSON body")


def _parse_templates(raw):
    if not isinstance(raw, list):
        raise ValueError("templates must be a list")
    return [Template.from_dict(item) for item in raw]


def setup_routes(routes, handle):
    @routes.post("/templatevault/init")
    async def init_database(_request):
        try:
            await _call(handle.initialize)
        except StoreError as exc:
            return _json_response({"error": f"Failed to initialize database: {exc}"}, status=500)
        return _message("Database initialized")

    @routes.get("/templatevault/health")
    async def health(_request):
        return _json_response({"ok": True, "ready": handle.is_ready, "db_path": handle.db_path})

    @routes.get("/templatevault/templates")
    async def get_all_templates(_request):
        try:
            templates = await _call(handle.get_all_templates)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"items": [t.to_dict() for t in templates]})

    @routes.post("/templatevault/templates")
    async def save_template(request):
        payload, error = await _read_json(request)
        if error:
            return error
        try:
            template = Template.from_dict(payload)
        except ValueError as exc:
            return _bad_request(str(exc))
        try:
            await _call(handle.upsert_template, template)
        except StoreError as exc:
            return _store_error(exc)
        return _message("Template saved successfully")

    @routes.post("/templatevault/templates/import")
    async def import_templates(request):
        payload, error = await _read_json(request)
        if error:
            return error
        if isinstance(payload, dict):
            payload = payload.get("templates")
        try:
            templates = _parse_templates(payload)
        except ValueError as exc:
            return _bad_request(str(exc))
        try:
            count = await _call(handle.batch_upsert_templates, templates)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"message": "Templates saved successfully", "count": count})

    @routes.get("/templatevault/templates/search")
    async def search_templates(request):
        keyword = request.query.get("keyword", "")
        try:
            templates = await _call(handle.search_templates, keyword)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"items": [t.to_dict() for t in templates], "keyword": keyword})

    @routes.post("/templatevault/templates/clear")
    async def clear_templates(_request):
        try:
            count = await _call(handle.clear_all_templates)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"message": "Templates cleared successfully", "deleted": count})

    @routes.get("/templatevault/templates/{tpl_id}")
    async def get_template_by_id(request):
        tpl_id = request.match_info["tpl_id"]
        try:
            template = await _call(handle.get_template_by_id, tpl_id)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"item": template.to_dict() if template else None})

    @routes.get("/templatevault/templates/{tpl_id}/text")
    async def get_template_text(request):
        tpl_id = request.match_info["tpl_id"]
        try:
            template = await _call(handle.get_template_by_id, tpl_id)
        except StoreError as exc:
            return _store_error(exc)
        if template is None:
            return _json_response({"error": "Template not found"}, status=404)
        return web.Response(text=template.to_text(), content_type="text/plain")

    @routes.delete("/templatevault/templates/{tpl_id}")
    async def delete_template(request):
        tpl_id = request.match_info["tpl_id"]
        try:
            await _call(handle.delete_template, tpl_id)
        except StoreError as exc:
            return _store_error(exc)
        return _message("Template deleted successfully")

    @routes.post("/templatevault/templates/{tpl_id}/favorite")
    async def toggle_template_favorite(request):
        tpl_id = request.match_info["tpl_id"]
        try:
            await _call(handle.toggle_template_favorite, tpl_id)
        except StoreError as exc:
            return _store_error(exc)
        return _message("Template favorite status toggled successfully")

    @routes.get("/templatevault/diseases")
    async def get_all_diseases(_request):
        try:
            items = await _call(handle.get_all_diseases)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"items": [c.to_dict() for c in items]})

    @routes.get("/templatevault/template_types")
    async def get_all_template_types(_request):
        try:
            items = await _call(handle.get_all_template_types)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"items": [c.to_dict() for c in items]})

    @routes.get("/templatevault/tags")
    async def get_all_tags(_request):
        try:
            tags = await _call(handle.get_all_tags)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response({"items": [t.to_dict() for t in tags]})

    @routes.post("/templatevault/tags")
    async def save_tag(request):
        payload, error = await _read_json(request)
        if error:
            return error
        try:
            tag = Tag.from_dict(payload)
        except ValueError as exc:
            return _bad_request(str(exc))
        try:
            await _call(handle.upsert_tag, tag)
        except StoreError as exc:
            return _store_error(exc)
        return _message("Tag saved successfully")

    @routes.post("/templatevault/tags/reset")
    async def reset_tags(request):
        reseed = request.query.get("reseed", "").strip().lower() in {"1", "true", "yes", "on"}
        try:
            await _call(handle.reset_tags, reseed=reseed)
        except StoreError as exc:
            return _store_error(exc)
        return _message("Tags reset successfully")

    @routes.get("/templatevault/export")
    async def export_templatevault(_request):
        try:
            bundle = await _call(handle.export_bundle)
        except StoreError as exc:
            return _store_error(exc)
        return web.Response(
            text=json.dumps(bundle, ensure_ascii=False, indent=2),
            content_type="application/json",
            headers={"Content-Disposition": f'attachment; filename="{_download_name("json")}"'},
        )

    @routes.post("/templatevault/import")
    async def import_templatevault(request):
        payload, error = await _read_json(request)
        if error:
            return error
        if not isinstance(payload, dict):
            return _bad_request("Import bundle must be a JSON object")
        try:
            templates = _parse_templates(payload.get("templates") or [])
            raw_tags = payload.get("tags") or []
            if not isinstance(raw_tags, list):
                raise ValueError("tags must be a list")
            tags = [Tag.from_dict(item) for item in raw_tags]
        except ValueError as exc:
            return _bad_request(str(exc))
        try:
            count = await _call(handle.batch_upsert_templates, templates)
            for tag in tags:
                await _call(handle.upsert_tag, tag)
        except StoreError as exc:
            return _store_error(exc)
        logger.info("Imported bundle: templates=%d tags=%d", count, len(tags))
        return _json_response({"templates": count, "tags": len(tags)})

    @routes.get("/templatevault/settings")
    async def get_settings(_request):
        try:
            settings = await _call(handle.get_settings)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response(settings)

    @routes.put("/templatevault/settings")
    async def put_settings(request):
        payload, error = await _read_json(request)
        if error:
            return error
        if not isinstance(payload, dict):
            return _bad_request("Settings must be a JSON object")
        try:
            settings = await _call(handle.set_settings, payload)
        except StoreError as exc:
            return _store_error(exc)
        return _json_response(settings)


def create_app(handle=None):
    routes = web.RouteTableDef()
    setup_routes(routes, handle or StoreHandle.get())
    app = web.Application()
    app.add_routes(routes)
    return app
