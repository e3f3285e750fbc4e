"""
SQLite schema and seed data for the clinic store.
"""

SCHEMA = """
CREATE TABLE IF NOT EXISTS specialties (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    duration INTEGER NOT NULL DEFAULT 30
);

CREATE TABLE IF NOT EXISTS doctors (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    specialty_id TEXT NOT NULL REFERENCES specialties(id),
    crm TEXT
);

CREATE TABLE IF NOT EXISTS doctor_schedules (
    doctor_id TEXT NOT NULL REFERENCES doctors(id),
    weekday INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    PRIMARY KEY (doctor_id, weekday)
);

CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    full_name TEXT NOT NULL,
    phone TEXT NOT NULL,
    cpf TEXT UNIQUE,
    email TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_patients_phone ON patients(phone);

CREATE TABLE IF NOT EXISTS appointments (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL REFERENCES patients(id),
    doctor_id TEXT NOT NULL REFERENCES doctors(id),
    specialty_id TEXT NOT NULL REFERENCES specialties(id),
    scheduled_at TEXT NOT NULL,
    end_time TEXT NOT NULL,
    duration INTEGER NOT NULL DEFAULT 30,
    reason TEXT NOT NULL,
    status TEXT NOT NULL,
    type TEXT NOT NULL,
    conversation_id TEXT,
    idempotency_key TEXT UNIQUE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_appointments_doctor_time ON appointments(doctor_id, scheduled_at);

CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL REFERENCES conversations(id),
    content TEXT NOT NULL,
    role TEXT NOT NULL,
    processed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL
);
"""

# weekday: Monday = 0 ... Saturday = 5
_WEEKDAYS = [0, 1, 2, 3, 4]

SEED_DOCTORS = [
    {"id": "doc-joao-silva", "name": "Dr. João Silva", "specialty_id": "cardiologia", "crm": "CRM-SP 123456"},
    {"id": "doc-maria-santos", "name": "Dra. Maria Santos", "specialty_id": "cardiologia", "crm": "CRM-SP 234567"},
    {"id": "doc-carlos-oliveira", "name": "Dr. Carlos Oliveira", "specialty_id": "ortopedia", "crm": "CRM-SP 345678"},
    {"id": "doc-ana-costa", "name": "Dra. Ana Costa", "specialty_id": "pediatria", "crm": "CRM-SP 456789"},
    {"id": "doc-fernanda-lima", "name": "Dra. Fernanda Lima", "specialty_id": "ginecologia", "crm": "CRM-SP 567890"},
    {"id": "doc-ricardo-souza", "name": "Dr. Ricardo Souza", "specialty_id": "dermatologia", "crm": "CRM-SP 678901"},
    {"id": "doc-patricia-alves", "name": "Dra. Patrícia Alves", "specialty_id": "oftalmologia", "crm": "CRM-SP 789012"},
]

SEED_SCHEDULES = (
    [{"doctor_id": "doc-joao-silva", "weekday": d, "start_time": "08:00", "end_time": "17:00"} for d in _WEEKDAYS]
    + [{"doctor_id": "doc-maria-santos", "weekday": d, "start_time": "07:00", "end_time": "12:00"} for d in _WEEKDAYS + [5]]
    + [{"doctor_id": "doc-carlos-oliveira", "weekday": d, "start_time": "09:00", "end_time": "18:00"} for d in _WEEKDAYS]
    + [{"doctor_id": "doc-ana-costa", "weekday": d, "start_time": "08:00", "end_time": "19:00"} for d in _WEEKDAYS]
    + [{"doctor_id": "doc-fernanda-lima", "weekday": d, "start_time": "13:00", "end_time": "19:00"} for d in _WEEKDAYS]
    + [{"doctor_id": "doc-ricardo-souza", "weekday": d, "start_time": "08:00", "end_time": "16:00"} for d in [0, 2, 4]]
    + [{"doctor_id": "doc-patricia-alves", "weekday": d, "start_time": "10:00", "end_time": "19:00"} for d in [1, 3, 5]]
)
