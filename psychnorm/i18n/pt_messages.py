"""Portuguese (pt-BR) message constants used across services and routers."""


class SelectionMessages:
    """Reasons attached to ranked candidates and selector warnings."""

    NO_ACTIVE_TABLES: str = "Nenhuma tabela normativa ativa encontrada para o teste {test_type}"
    TABLE_NOT_FOUND: str = "Tabela normativa {table_id} não encontrada ou inativa para o teste {test_type}"
    REASON_PRIMARY_REGION: str = "📍 {region} (prioridade regional)"
    REASON_SECONDARY_REGION: str = "📍 Região {region}"
    REASON_FIRST_LICENSE: str = "🚗 1ª Habilitação CNH"
    REASON_RENEWAL: str = "🔄 Renovação CNH"
    REASON_CATEGORY_CHANGE: str = "🔄 Mudança de Categoria"
    REASON_CATEGORY_ADDITION: str = "🔄 Adição de Categoria"
    REASON_PROFESSIONAL: str = "🚛 Motoristas Profissionais"
    REASON_AGE_BAND: str = "👤 Faixa etária {low}-{high} anos"
    REASON_EDUCATION: str = "📚 Ensino {tier}"
    REASON_GENERAL: str = "🌐 Tabela geral (abrangente)"
    WARN_TRANSIT_AGE: str = "⚠️ Idade {age} anos está abaixo da idade mínima para CNH ({minimum} anos)"
    INFO_UNSCHOOLED: str = 'ℹ️ Escolaridade "Não Escolarizado" não tem tabela específica. Usando tabela geral.'
    WARN_OUTSIDE_NORMS: str = "⚠️ Idade {age} anos está fora das faixas normativas padrão ({minimum}-92 anos)"


class ScoringMessages:
    UNSUPPORTED_TEST_TYPE: str = "Tipo de teste não suportado: {test_type}"
    SCORER_NOT_REGISTERED: str = "Nenhum avaliador registrado para o teste '{code}'"


class EvaluationMessages:
    EXAMINEE_REQUIRED: str = "Paciente é obrigatório para vincular o resultado a uma avaliação"
    EXAMINEE_NOT_FOUND: str = "Paciente {examinee_id} não encontrado"
    EVALUATION_NOT_FOUND: str = "Avaliação {evaluation_id} não encontrada"
    SAVE_FAILED: str = "Resultado calculado, mas não foi possível salvá-lo na avaliação"


class InventoryMessages:
    UNMAPPED_TEST: str = "Teste {test_type} não consome itens do estoque"
    ITEM_NOT_FOUND: str = "Item de estoque não encontrado: {item_name}"
    INSUFFICIENT: str = "Estoque insuficiente de {item_name}: disponível {available}, necessário {required}"
    DEDUCTED: str = "Estoque atualizado: -{quantity} {item_name}"
    DEDUCTION_FAILED: str = "Não foi possível atualizar o estoque de {item_name}"
    EXEMPT_ROLE: str = "Usuário isento de controle de estoque"
    MOVEMENT_NOTE: str = "Aplicação de teste {test_type} - Avaliação #{evaluation_id}"


class SecurityMessages:
    MISSING_AUTHORIZATION: str = "Cabeçalho Authorization ausente"
    INVALID_AUTHORIZATION: str = "Formato inválido do cabeçalho Authorization. Esperado: Bearer <token>"
    INVALID_PAYLOAD: str = "Payload do token inválido"
    USER_NOT_FOUND: str = "Usuário não encontrado"


class ImportMessages:
    INVALID_HEADER: str = "Cabeçalho CSV inválido: colunas obrigatórias {required}"
    INVALID_ROW: str = "Linha {line} inválida: {reason}"
    EMPTY_FILE: str = "Arquivo CSV sem linhas normativas"
    DUPLICATE_TABLE: str = "Tabela '{name}' versão {version} já existe para o teste {test_type}"
