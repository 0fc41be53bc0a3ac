from __future__ import annotations
import secrets

def _tok(nbytes: int = 12) -> str:
    return secrets.token_urlsafe(nbytes)

def new_layer_id() -> str:
    return f"lyr_{_tok()}"

def new_project_id() -> str:
    return f"prj_{_tok()}"
