"""
baseline_terms.py

Built-in multilingual budget vocabulary used as the lowest-precedence
layer of the tag predictor. Keep explicit + auditable; learned user and
global corrections always win over these lists.
"""

from __future__ import annotations

from typing import Dict, List

from .models import ItemTag


# Declaration order is also the tie-break order when two tags score equally.
BASELINE_TERMS: Dict[ItemTag, List[str]] = {
    # ------------------------------------------------------
    # RECURRING (R) - fixed / regular bills
    # ------------------------------------------------------
    ItemTag.RECURRING: [
        # Portuguese
        "aluguel", "renda", "aluguer", "hipoteca", "prestação",
        "água", "luz", "gás", "eletricidade", "internet", "telefone",
        "seguro", "seguros", "assinatura", "assinaturas", "mensalidade",
        "netflix", "spotify", "hbo", "disney", "amazon prime",
        "condomínio", "iptu", "ipva", "fixos", "fixas",
        # English
        "rent", "mortgage", "insurance", "subscription", "subscriptions",
        "utilities", "electricity", "water", "gas", "phone",
        "hulu", "gym", "membership", "recurring",
        # German
        "miete", "versicherung", "strom", "wasser", "heizung",
        "abonnement", "mitgliedschaft",
        # French
        "loyer", "assurance", "électricité", "eau", "chauffage",
        # Spanish
        "alquiler", "suscripción", "electricidad",
        # Russian
        "аренда", "ипотека", "страховка", "подписка", "коммунальные",
        "электричество", "вода", "газ", "интернет", "телефон",
        "членство",
    ],
    # ------------------------------------------------------
    # BUDGET (B) - variable / discretionary spend
    # ------------------------------------------------------
    ItemTag.BUDGET: [
        # Portuguese
        "alimentação", "supermercado", "mercado", "compras", "comida",
        "transporte", "combustível", "gasolina", "uber", "táxi",
        "restaurante", "café", "lazer", "entretenimento", "diversão",
        "roupas", "vestuário", "beleza", "saúde", "farmácia",
        "educação", "livros", "cursos", "presentes", "viagem",
        "manutenção", "casa", "carro", "habitação", "despesas",
        "variáveis", "variavel",
        # English
        "groceries", "food", "dining", "restaurant", "coffee",
        "transportation", "fuel", "taxi", "parking",
        "entertainment", "movies", "shopping", "clothes", "clothing",
        "health", "pharmacy", "beauty", "haircut", "education",
        "books", "gifts", "travel", "vacation", "maintenance",
        "home", "car", "pet", "pets", "budget", "expenses",
        "dinner", "lunch", "fun",
        # German
        "lebensmittel", "essen", "transport", "benzin",
        "kleidung", "gesundheit", "apotheke", "bildung", "reise",
        "spaß", "unterhaltung",
        # French
        "alimentation", "nourriture", "essence",
        "vêtements", "santé", "pharmacie", "éducation", "voyage",
        "courses", "loisirs",
        # Spanish
        "alimentación", "ropa", "salud", "farmacia", "educación", "viaje",
        "ocio",
        # Russian
        "продукты", "еда", "ресторан", "транспорт", "бензин",
        "одежда", "здоровье", "аптека", "образование", "путешествие",
        "развлечения", "покупки",
    ],
    # ------------------------------------------------------
    # SAVINGS (S) - goals and investments
    # ------------------------------------------------------
    ItemTag.SAVINGS: [
        # Portuguese
        "poupança", "investimento", "investimentos", "reserva",
        "emergência", "fundo de emergência", "meta", "metas",
        "aposentadoria", "previdência", "ações", "fundos",
        "cripto", "bitcoin", "tesouro", "cdb", "lci", "lca",
        "boleto pessoal",
        # English
        "savings", "investment", "investments", "emergency fund",
        "retirement", "401k", "ira", "stocks", "bonds", "etf",
        "crypto", "goal", "goals", "fund", "emergency",
        # German
        "sparen", "investition", "notfall", "rente", "aktien",
        # French
        "épargne", "investissement", "retraite", "actions",
        # Spanish
        "ahorro", "inversión", "jubilación", "acciones",
        # Russian
        "сбережения", "инвестиции", "накопления", "акции",
        "криптовалюта", "биткоин", "пенсия", "резерв",
    ],
    # ------------------------------------------------------
    # INCOME (IN)
    # ------------------------------------------------------
    ItemTag.INCOME: [
        # Portuguese
        "salário", "receita", "rendimento", "rendimentos",
        "freelance", "bônus", "décimo terceiro", "férias",
        "dividendos", "aluguel recebido", "extra", "receitas",
        "renda total", "total receitas",
        # English
        "salary", "income", "wages", "paycheck", "revenue",
        "bonus", "dividends", "rental income", "side hustle",
        # German
        "gehalt", "einkommen", "lohn",
        # French
        "salaire", "revenu", "revenus",
        # Spanish
        "salario", "ingreso", "ingresos", "sueldo",
        # Russian
        "зарплата", "доход", "заработок", "оклад",
        "дивиденды", "премия", "фриланс",
    ],
    # ------------------------------------------------------
    # DEBT (D)
    # ------------------------------------------------------
    ItemTag.DEBT: [
        # Portuguese
        "dívida", "dívidas", "empréstimo", "financiamento",
        "cartão de crédito", "parcelamento", "juros",
        # English
        "debt", "loan", "credit card", "mortgage payment",
        "student loan", "car payment", "interest",
        # German
        "schulden", "kredit", "darlehen",
        # French
        "dette", "prêt", "crédit",
        # Spanish
        "deuda", "préstamo", "crédito",
        # Russian
        "долг", "кредит", "займ", "ипотечный платёж",
    ],
}
