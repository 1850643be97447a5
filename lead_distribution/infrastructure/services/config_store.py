"""
CONFIG STORE - CONFIGURAÇÃO DE DISTRIBUIÇÃO
============================================

Lê e grava a DistributionConfig de cada funil.

- Leitura sem linha gravada devolve os padrões (modo manual).
- Gravação é um upsert parcial validado pelo pydantic; qualquer valor
  inválido vira ConfigInvalid antes de tocar no banco.
- Gravar a config também provisiona o cursor do rodízio do funil.
"""

import logging
from typing import List, Optional, Union

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lead_distribution.domain.entities import DistributionConfig, DistributionMode, RotationCursor
from lead_distribution.domain.exceptions import ConfigInvalid
from lead_distribution.schemas.distribution import (
    DistributionConfigSchema,
    DistributionConfigUpdate,
)

logger = logging.getLogger(__name__)

CONFIG_FIELDS = [
    name for name in DistributionConfigSchema.model_fields if name != "pipeline_id"
]


class ConfigStore:
    """Acesso à configuração de distribuição por funil."""

    async def get_entity(
        self,
        session: AsyncSession,
        pipeline_id: int,
    ) -> Optional[DistributionConfig]:
        result = await session.execute(
            select(DistributionConfig).where(DistributionConfig.pipeline_id == pipeline_id)
        )
        return result.scalar_one_or_none()

    async def get(self, session: AsyncSession, pipeline_id: int) -> DistributionConfigSchema:
        """Config do funil; padrões se o admin nunca configurou."""
        entity = await self.get_entity(session, pipeline_id)

        if entity is None:
            return DistributionConfigSchema(pipeline_id=pipeline_id)

        return DistributionConfigSchema.model_validate(entity)

    async def list_sla_enabled(self, session: AsyncSession) -> List[DistributionConfigSchema]:
        """
        Configs com SLA ligado (usado pela varredura).

        Só funis em rodízio: em modo manual o admin é dono da atribuição
        e não há para quem redistribuir.
        """
        result = await session.execute(
            select(DistributionConfig)
            .where(
                DistributionConfig.sla_enabled.is_(True),
                DistributionConfig.mode == DistributionMode.ROUND_ROBIN.value,
            )
            .order_by(DistributionConfig.pipeline_id)
        )
        return [DistributionConfigSchema.model_validate(c) for c in result.scalars().all()]

    async def save(
        self,
        session: AsyncSession,
        pipeline_id: int,
        payload: Union[DistributionConfigUpdate, dict],
    ) -> DistributionConfigSchema:
        """
        Cria ou atualiza a config do funil.

        Raises:
            ConfigInvalid: payload ou config resultante inválidos
        """
        try:
            update = (
                payload
                if isinstance(payload, DistributionConfigUpdate)
                else DistributionConfigUpdate.model_validate(payload)
            )
        except ValidationError as e:
            raise ConfigInvalid(f"Configuração inválida para o funil {pipeline_id}", e.errors()) from e

        changes = update.model_dump(exclude_unset=True)
        entity = await self.get_entity(session, pipeline_id)

        current = (
            DistributionConfigSchema.model_validate(entity)
            if entity is not None
            else DistributionConfigSchema(pipeline_id=pipeline_id)
        )

        try:
            merged = DistributionConfigSchema.model_validate(
                {**current.model_dump(), **changes, "pipeline_id": pipeline_id}
            )
        except ValidationError as e:
            raise ConfigInvalid(f"Configuração inválida para o funil {pipeline_id}", e.errors()) from e

        if entity is None:
            entity = DistributionConfig(pipeline_id=pipeline_id)
            session.add(entity)

        values = merged.model_dump()
        for field in CONFIG_FIELDS:
            setattr(entity, field, values[field])

        await self._ensure_cursor(session, pipeline_id)
        await session.flush()

        logger.info(
            f"⚙️ Config de distribuição salva: funil={pipeline_id} modo={merged.mode} "
            f"sla={'on' if merged.sla_enabled else 'off'}"
        )

        return merged

    async def _ensure_cursor(self, session: AsyncSession, pipeline_id: int) -> None:
        result = await session.execute(
            select(RotationCursor.id).where(RotationCursor.pipeline_id == pipeline_id)
        )
        if result.scalar_one_or_none() is None:
            session.add(
                RotationCursor(
                    pipeline_id=pipeline_id,
                    ordered_member_ids=[],
                    last_assigned_index=-1,
                    version=0,
                )
            )
