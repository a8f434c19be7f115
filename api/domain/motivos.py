# SPDX-License-Identifier: Apache-2.0

"""
Reason catalog for grant operations.

Static configuration data: each operation maps to the reasons an operator
may pick. Inactive entries are kept for historical records but are never
offered for new operations.
"""

from types import MappingProxyType
from typing import List

from models.entities import MotivoOperacao
from models.enums import OperacaoConcessao


MOTIVOS_POR_OPERACAO = MappingProxyType({
    OperacaoConcessao.BLOQUEIO: (
        MotivoOperacao(codigo="BLQ01", descricao="Irregularidade na documentação"),
        MotivoOperacao(codigo="BLQ02", descricao="Indício de duplicidade de benefício"),
        MotivoOperacao(codigo="BLQ03", descricao="Não comparecimento à visita técnica"),
        MotivoOperacao(codigo="BLQ04", descricao="Determinação judicial de bloqueio"),
        MotivoOperacao(codigo="BLQ05", descricao="Bloqueio preventivo por auditoria", ativo=False),
    ),
    OperacaoConcessao.DESBLOQUEIO: (
        MotivoOperacao(codigo="DBL01", descricao="Documentação regularizada"),
        MotivoOperacao(codigo="DBL02", descricao="Duplicidade não confirmada"),
        MotivoOperacao(codigo="DBL03", descricao="Visita técnica realizada"),
        MotivoOperacao(codigo="DBL04", descricao="Determinação judicial de desbloqueio"),
    ),
    OperacaoConcessao.SUSPENSAO: (
        MotivoOperacao(codigo="SUS01", descricao="Mudança temporária de município"),
        MotivoOperacao(codigo="SUS02", descricao="Internação hospitalar do beneficiário"),
        MotivoOperacao(codigo="SUS03", descricao="Atualização cadastral pendente"),
        MotivoOperacao(codigo="SUS04", descricao="Reavaliação socioeconômica em andamento"),
        MotivoOperacao(codigo="SUS05", descricao="Suspensão administrativa genérica", ativo=False),
    ),
    OperacaoConcessao.REATIVACAO: (
        MotivoOperacao(codigo="REA01", descricao="Retorno ao município"),
        MotivoOperacao(codigo="REA02", descricao="Cadastro atualizado"),
        MotivoOperacao(codigo="REA03", descricao="Reavaliação socioeconômica favorável"),
        MotivoOperacao(codigo="REA04", descricao="Determinação judicial de reativação"),
    ),
    OperacaoConcessao.CANCELAMENTO: (
        MotivoOperacao(codigo="CAN01", descricao="Óbito do beneficiário"),
        MotivoOperacao(codigo="CAN02", descricao="Mudança definitiva de município"),
        MotivoOperacao(codigo="CAN03", descricao="Superação da situação de vulnerabilidade"),
        MotivoOperacao(codigo="CAN04", descricao="Fraude comprovada"),
        MotivoOperacao(codigo="CAN05", descricao="Desistência do beneficiário"),
        MotivoOperacao(codigo="CAN06", descricao="Cancelamento por prazo expirado", ativo=False),
    ),
})


def motivos_ativos(operacao: OperacaoConcessao) -> List[MotivoOperacao]:
    """Active catalog entries for an operation."""
    return [motivo for motivo in MOTIVOS_POR_OPERACAO.get(operacao, ()) if motivo.ativo]
