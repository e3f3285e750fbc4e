"""
Static clinic knowledge: specialties, FAQs, emergency protocols and policies.
"""

SPECIALTIES = [
    {
        "id": "cardiologia",
        "name": "Cardiologia",
        "description": "Especialidade médica dedicada ao diagnóstico e tratamento das doenças do coração, dos vasos sanguíneos e do sistema circulatório.",
        "common_symptoms": [
            "dor no peito", "palpitações", "falta de ar", "fadiga", "tontura",
            "inchaço nas pernas", "pressão alta", "arritmia",
        ],
        "common_procedures": [
            "eletrocardiograma", "ecocardiograma", "teste ergométrico",
            "holter 24h", "cateterismo", "angioplastia",
        ],
        "duration": 45,
        "keywords": [
            "coração", "cardíaco", "cardiologista", "pressão", "hipertensão",
            "infarto", "arritmia", "palpitação",
        ],
        "urgency_indicators": [
            "dor no peito intensa", "falta de ar severa", "desmaio",
            "palpitações muito fortes",
        ],
    },
    {
        "id": "ortopedia",
        "name": "Ortopedia",
        "description": "Especialidade médica que cuida do sistema músculo-esquelético, incluindo ossos, articulações, músculos, tendões e ligamentos.",
        "common_symptoms": [
            "dor nas costas", "dor nas articulações", "dor muscular",
            "limitação de movimento", "inchaço", "rigidez",
        ],
        "common_procedures": [
            "raio-x", "ressonância magnética", "ultrassom",
            "infiltração", "fisioterapia", "cirurgia ortopédica",
        ],
        "duration": 30,
        "keywords": [
            "osso", "articulação", "músculo", "ortopedista", "fratura",
            "entorse", "artrose", "coluna", "joelho", "ombro",
        ],
        "urgency_indicators": [
            "fratura exposta", "luxação", "perda total de movimento",
            "dor insuportável",
        ],
    },
    {
        "id": "pediatria",
        "name": "Pediatria",
        "description": "Especialidade médica dedicada aos cuidados de saúde de bebês, crianças e adolescentes até os 18 anos.",
        "common_symptoms": [
            "febre", "tosse", "vômito", "diarreia", "irritabilidade",
            "perda de apetite", "erupções cutâneas",
        ],
        "common_procedures": [
            "consultas de rotina", "vacinação", "avaliação do crescimento",
            "exames preventivos", "tratamento de infecções",
        ],
        "duration": 30,
        "keywords": [
            "criança", "bebê", "adolescente", "pediatra", "vacina",
            "crescimento", "desenvolvimento", "puericultura",
        ],
        "urgency_indicators": [
            "febre muito alta", "dificuldade respiratória", "convulsão",
            "desidratação severa",
        ],
    },
    {
        "id": "ginecologia",
        "name": "Ginecologia",
        "description": "Especialidade médica que cuida da saúde do sistema reprodutor feminino.",
        "common_symptoms": [
            "irregularidade menstrual", "dor pélvica", "corrimento",
            "sangramento anormal", "cólicas intensas",
        ],
        "common_procedures": [
            "exame ginecológico", "papanicolau", "ultrassom pélvico",
            "colposcopia", "mamografia",
        ],
        "duration": 30,
        "keywords": [
            "ginecologista", "gineco", "menstruação", "útero", "ovário",
            "gravidez", "contraceptivo", "menopausa",
        ],
        "urgency_indicators": [
            "sangramento intenso", "dor pélvica severa", "gravidez ectópica",
        ],
    },
    {
        "id": "dermatologia",
        "name": "Dermatologia",
        "description": "Especialidade médica que trata das doenças da pele, cabelos, unhas e mucosas.",
        "common_symptoms": [
            "manchas na pele", "coceira", "descamação", "feridas",
            "mudanças em pintas", "acne", "queda de cabelo",
        ],
        "common_procedures": [
            "dermatoscopia", "biópsia", "crioterapia",
            "tratamentos estéticos", "remoção de lesões",
        ],
        "duration": 30,
        "keywords": [
            "pele", "dermatologista", "mancha", "pinta", "acne",
            "alergia", "eczema", "psoríase",
        ],
        "urgency_indicators": [
            "lesões que sangram", "mudanças rápidas em pintas",
            "reações alérgicas severas",
        ],
    },
    {
        "id": "oftalmologia",
        "name": "Oftalmologia",
        "description": "Especialidade médica que cuida da saúde dos olhos e do sistema visual.",
        "common_symptoms": [
            "perda de visão", "dor nos olhos", "visão embaçada",
            "olhos vermelhos", "sensibilidade à luz", "moscas volantes",
        ],
        "common_procedures": [
            "exame de fundo de olho", "medição de pressão ocular",
            "teste de acuidade visual", "campo visual",
        ],
        "duration": 30,
        "keywords": [
            "olho", "oftalmologista", "visão", "óculos", "lente",
            "catarata", "glaucoma", "miopia",
        ],
        "urgency_indicators": [
            "perda súbita de visão", "trauma ocular", "dor ocular intensa",
        ],
    },
]

FAQS = [
    {
        "id": "appointment_cancellation",
        "question": "Como cancelar uma consulta?",
        "answer": "Você pode cancelar sua consulta através do nosso chat, pelo telefone ou app. Por favor, cancele com pelo menos 24 horas de antecedência para evitar cobrança.",
        "category": "appointment",
        "keywords": ["cancelar", "desmarcar", "24 horas"],
    },
    {
        "id": "appointment_rescheduling",
        "question": "Posso remarcar minha consulta?",
        "answer": "Sim! Você pode reagendar através do chat, telefone ou app. Verificaremos a disponibilidade do médico e ofereceremos novas opções de horário.",
        "category": "appointment",
        "keywords": ["reagendar", "remarcar", "mudar horário", "disponibilidade"],
    },
    {
        "id": "insurance_coverage",
        "question": "Quais convênios vocês atendem?",
        "answer": "Trabalhamos com Unimed, Bradesco Saúde, SulAmérica, Amil, Golden Cross e outros. Verifique a cobertura antes da consulta. Também atendemos particular.",
        "category": "insurance",
        "keywords": ["convênio", "plano", "unimed", "bradesco", "sulamerica", "amil", "particular"],
    },
    {
        "id": "clinic_hours",
        "question": "Qual o horário de funcionamento?",
        "answer": "Funcionamos de segunda a sexta das 7h às 19h, e sábados das 7h às 12h. Para emergências, temos plantão 24h pelo telefone.",
        "category": "general",
        "keywords": ["horário", "funcionamento", "abre", "fecha", "sábado", "plantão"],
    },
    {
        "id": "appointment_preparation",
        "question": "Como me preparar para a consulta?",
        "answer": "Traga um documento com foto, cartão do convênio (se houver), lista de medicamentos atuais, e chegue 15 minutos antes. Jejum só é necessário para exames específicos.",
        "category": "appointment",
        "keywords": ["preparar", "documento", "levar", "jejum", "15 minutos"],
    },
    {
        "id": "emergency_contact",
        "question": "Como proceder em caso de emergência?",
        "answer": "Para emergências, ligue imediatamente para nosso plantão 24h ou procure o pronto-socorro mais próximo. Em casos graves, chame o SAMU (192).",
        "category": "emergency",
        "keywords": ["emergência", "plantão", "pronto-socorro", "samu", "192", "grave"],
    },
    {
        "id": "first_appointment",
        "question": "É minha primeira consulta. O que preciso saber?",
        "answer": "Para primeira consulta, chegue 30 minutos antes para cadastro. Traga documento, comprovante de endereço, cartão do convênio e liste suas queixas principais.",
        "category": "appointment",
        "keywords": ["primeira", "cadastro", "30 minutos", "comprovante", "queixas"],
    },
    {
        "id": "prescription_renewal",
        "question": "Posso renovar receita sem consulta?",
        "answer": "Receitas controladas e alguns medicamentos exigem consulta médica. Para medicamentos de uso contínuo, o médico pode autorizar renovação por um período determinado.",
        "category": "general",
        "keywords": ["receita", "renovar", "controlada", "medicamento", "contínuo"],
    },
]

# Table order breaks ties between protocols of the same urgency.
EMERGENCY_PROTOCOLS = [
    {
        "id": "chest_pain",
        "symptoms": [
            "dor no peito", "dor torácica", "aperto no peito",
            "queimação no peito", "peso no peito",
        ],
        "urgency_level": "immediate",
        "response": "Dor no peito pode indicar problemas cardíacos graves. Procure atendimento de emergência IMEDIATAMENTE.",
        "actions": [
            "Chame o SAMU (192) ou vá ao pronto-socorro",
            "Se possível, mastigue um AAS 100mg",
            "Permaneça calmo e evite esforços",
            "Informe alguém sobre sua condição",
        ],
    },
    {
        "id": "breathing_difficulty",
        "symptoms": [
            "falta de ar", "dificuldade para respirar", "sufocamento",
            "respiração ofegante", "chiado no peito",
        ],
        "urgency_level": "immediate",
        "response": "Dificuldade respiratória severa requer atendimento imediato.",
        "actions": [
            "Procure pronto-socorro imediatamente",
            "Sente-se em posição confortável",
            "Afrouxe roupas apertadas",
            "Mantenha-se calmo",
        ],
    },
    {
        "id": "high_fever",
        "symptoms": [
            "febre alta", "temperatura acima de 39°C", "febre persistente",
            "calafrios intensos",
        ],
        "urgency_level": "urgent",
        "response": "Febre muito alta, especialmente se persistente, requer avaliação médica urgente.",
        "actions": [
            "Procure atendimento médico nas próximas horas",
            "Mantenha-se hidratado",
            "Use roupas leves",
            "Monitore outros sintomas",
        ],
    },
    {
        "id": "severe_injury",
        "symptoms": [
            "fratura exposta", "sangramento intenso", "trauma grave",
            "perda de consciência", "convulsão",
        ],
        "urgency_level": "immediate",
        "response": "Trauma grave requer atendimento de emergência imediato.",
        "actions": [
            "Chame SAMU (192)",
            "Não mova a pessoa se suspeitar de lesão na coluna",
            "Controle sangramento com pressão direta",
            "Mantenha vias aéreas desobstruídas",
        ],
    },
]

CLINIC_POLICIES = [
    {
        "id": "cancellation_policy",
        "topic": "Política de Cancelamento",
        "policy": "Cancelamentos devem ser feitos com pelo menos 24 horas de antecedência. Cancelamentos tardios podem gerar cobrança de 50% do valor da consulta.",
        "applicable_scenarios": ["cancelamento", "reagendamento", "falta"],
    },
    {
        "id": "payment_policy",
        "topic": "Política de Pagamento",
        "policy": "Aceitamos dinheiro, cartão de débito/crédito e PIX. Consultas particulares devem ser pagas no ato. Convênios seguem regras específicas de cada plano.",
        "applicable_scenarios": ["pagamento", "particular", "convênio", "cartão"],
    },
    {
        "id": "delay_policy",
        "topic": "Política de Atraso",
        "policy": "Toleramos até 15 minutos de atraso. Após esse período, a consulta poderá ser reagendada conforme disponibilidade.",
        "applicable_scenarios": ["atraso", "pontualidade"],
    },
    {
        "id": "privacy_policy",
        "topic": "Política de Privacidade",
        "policy": "Todos os dados dos pacientes são protegidos conforme LGPD. Informações médicas são confidenciais e só compartilhadas com autorização expressa.",
        "applicable_scenarios": ["privacidade", "dados", "lgpd", "confidencialidade"],
    },
]

EMERGENCY_INFO = """EMERGÊNCIAS MÉDICAS - PROCURE ATENDIMENTO IMEDIATO:

SITUAÇÕES CRÍTICAS (CHAME O SAMU - 192):
- Dor no peito intensa
- Dificuldade respiratória severa
- Perda de consciência
- Sangramento intenso
- Convulsões

NOSSA CLÍNICA:
- Plantão 24h pelo telefone da clínica

IMPORTANTE: Em casos graves, não hesite em chamar o SAMU (192) ou ir ao pronto-socorro mais próximo."""
