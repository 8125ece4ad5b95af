"""
Base commune des schémas Pydantic exposés par l'API.

Le front-end consomme du JSON en camelCase (programId, startTime, totalSessions...) :
les champs restent en snake_case côté Python et sont sérialisés via leur alias.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
