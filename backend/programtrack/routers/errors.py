"""
Traduction des erreurs métier (ValueError) en réponses HTTP.
"""

from fastapi import HTTPException


def http_error(exc: ValueError) -> HTTPException:
    """
    introuvable → 404, appelant non inscrit → 403, déjà enregistré / déjà dans cet état → 409,
    toute autre règle métier → 400.
    """
    msg = str(exc)
    if "introuvable" in msg:
        return HTTPException(status_code=404, detail=msg)
    if "Vous n'êtes pas inscrit" in msg:
        return HTTPException(status_code=403, detail=msg)
    if "déjà" in msg:
        return HTTPException(status_code=409, detail=msg)
    return HTTPException(status_code=400, detail=msg)
