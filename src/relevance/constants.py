"""Constants for the relevance module.

The lexical weights are fixed design constants: reports produced by
different runs are only comparable if they are reproduced verbatim.
"""

# Minimum Sørensen–Dice coefficient for a word to match a vocabulary term
DICE_COEFFICIENT_THRESHOLD: float = 0.75

# Lexical component weights
CREATOR_WEIGHT: int = 10
CATEGORY_WEIGHT: int = 5
KEYWORD_WEIGHT: int = 5
TITLE_WORD_WEIGHT: int = 10
DESCRIPTION_WORD_WEIGHT: int = 1
CONTENT_WORD_WEIGHT: int = 1

# Feedback decay: 10% per elapsed day, never below 70% of the pre-decay value
DECAY_PER_DAY: float = 0.1
DECAY_FLOOR: float = 0.7
DECAY_CEILING: float = 1.0

# Default cosine similarity a feedback record must strictly exceed
DEFAULT_SIMILARITY_THRESHOLD: float = 0.8

# Top-k sizes used by the dossier flow
PREFILTER_TOP_K: int = 100
REPORT_TOP_K: int = 20

# Root words describing politics, economy, security, health and technology.
# Spanish terms first (the default feeds are Spanish), English counterparts after.
ROOT_WORDS: frozenset[str] = frozenset(
    {
        # Politics
        "Elección", "Política", "Reforma", "Proyecto", "Ley", "Congreso",
        "Senado", "Presidente", "Gobierno", "Primer", "Ministro", "Gabinete",
        "Oposición", "Coalición", "Democracia", "Constitución", "Parlamento",
        "Legislación", "Diplomático", "Tratado", "Sanción", "Embargo",
        "Resolución", "Comité", "Campaña", "Cabildeo", "Defensa", "Legislar",
        "Enmienda",
        # Economy
        "Presupuesto", "Déficit", "Superávit", "Economía", "Inflación",
        "Recesión", "Mercado", "Comercio", "Acciones", "Índice", "Moneda",
        "Inversión", "Fiscal", "Monetario", "Arancel", "Exportación",
        "Importación", "PIB", "Empleo", "Desempleo", "Pobreza", "Deuda",
        "Préstamo", "Interés", "Crédito", "Hipoteca", "Quiebra", "Rescate",
        "Fusión", "Adquisición", "Accionista", "Dividendo", "Capital", "Bono",
        "Rendimiento", "Cartera", "Activo", "Pasivo", "Auditoría",
        # Health
        "Salud", "Vacuna", "Pandemia", "Brote", "Cuarentena", "Confinamiento",
        "Virus", "Infección", "Inmunidad", "Atención", "Hospital", "Clínica",
        "Tratamiento", "Diagnóstico",
        # Research and technology
        "Investigación", "Estudio", "Datos", "Estadísticas", "Encuesta",
        "Tecnología", "Innovación", "Software", "Hardware", "Red", "Internet",
        "Ciberseguridad", "Hackeo", "Brecha", "Cifrado", "IA", "Máquina",
        "Aprendizaje", "Robótica", "Automatización", "Cadena", "Criptomoneda",
        "Bitcoin", "Ethereum", "Social", "Medios", "Plataforma", "Aplicación",
        "Teléfono", "Móvil", "Satélite", "Espacio", "Exploración",
        # Climate and energy
        "Clima", "Medio", "Emisión", "Carbono", "Verde", "Energía", "Renovable",
        "Solar", "Eólica", "Combustible", "Fósil", "Conservación", "Vida",
        "Biodiversidad", "Océano", "Plástico", "Contaminación", "Residuos",
        "Reciclar",
        # Security
        "Guerra", "Conflicto", "Militar", "Seguridad", "Terrorismo", "Ataque",
        "Explosión", "Misil", "Nuclear", "Arma", "Dron", "Espía",
        "Inteligencia", "Refugiado", "Asilo", "Migración", "Frontera", "Visa",
        "Pasaporte", "Ciudadano", "Inmigración", "Deportación",
        # Justice
        "Humano", "Derechos", "Igualdad", "Justicia", "Corte", "Juez", "Juicio",
        "Jurado", "Veredicto", "Sentencia", "Apelación", "Crimen", "Robo",
        "Asesinato", "Fraude", "Soborno", "Corrupción", "Arresto", "Cargo",
        "Fianza", "Ejecución", "Seguro", "Prima", "Reclamación", "Asegurado",
        "Litigio", "Patente", "Derecho", "Marca", "Infracción", "Acuerdo",
        "Regulación", "Cumplimiento", "Estándar", "Procedimiento", "Protocolo",
        "Orientación", "Asesoramiento", "Consultoría", "Análisis", "Pronóstico",
        "Tendencia",
        # English counterparts
        "Election", "Politics", "Reform", "Law", "Congress", "Senate",
        "President", "Government", "Minister", "Cabinet", "Opposition",
        "Coalition", "Democracy", "Constitution", "Parliament", "Legislation",
        "Diplomat", "Treaty", "Sanction", "Budget", "Deficit", "Economy",
        "Inflation", "Recession", "Market", "Trade", "Stocks", "Currency",
        "Investment", "Tariff", "Export", "Import", "GDP", "Employment",
        "Unemployment", "Poverty", "Debt", "Health", "Vaccine", "Pandemic",
        "Outbreak", "Quarantine", "Infection", "Research", "Technology",
        "Innovation", "Cybersecurity", "Encryption", "AI", "Robotics",
        "Automation", "Blockchain", "Cryptocurrency", "Satellite", "Climate",
        "Emissions", "Carbon", "Energy", "Renewable", "Pollution", "War",
        "Conflict", "Military", "Security", "Terrorism", "Attack", "Missile",
        "Weapon", "Drone", "Intelligence", "Refugee", "Asylum", "Migration",
        "Border", "Immigration", "Justice", "Court", "Judge", "Trial",
        "Verdict", "Crime", "Fraud", "Bribery", "Corruption", "Arrest",
        "Bankruptcy", "Regulation", "Compliance", "Forecast",
    }
)
