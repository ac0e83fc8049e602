"""Vocabulary and patterns used by CV section classification and PII filtering.

Keyword lists are lowercase. Regex strings are compiled by their consumers.
"""

from profile_enrichment.models.profile import ProfileField

# Canonical heading keywords per bucket
HEADING_KEYWORDS = {
    ProfileField.SKILLS: [
        "skills",
        "technical skills",
        "core skills",
        "key skills",
        "tech stack",
        "technologies",
        "technical expertise",
        "competencies",
        "core competencies",
        "tools",
    ],
    ProfileField.LANGUAGES: [
        "languages",
        "language skills",
        "spoken languages",
    ],
    ProfileField.EDUCATION: [
        "education",
        "academic background",
        "qualifications",
        "degrees",
    ],
    ProfileField.WORK_EXPERIENCE: [
        "experience",
        "work experience",
        "employment",
        "employment history",
        "work history",
    ],
    ProfileField.VOLUNTEER: [
        "volunteer",
        "volunteering",
        "volunteer experience",
        "volunteer work",
    ],
    ProfileField.MILITARY: [
        "military",
        "military service",
        "military experience",
    ],
    ProfileField.COURSES: [
        "courses",
        "certifications",
        "certificates",
        "training",
    ],
    ProfileField.PROJECTS: [
        "projects",
        "personal projects",
        "key projects",
    ],
}

# Alternative heading phrasings normalised to a canonical bucket
HEADING_SYNONYMS = {
    "abilities": ProfileField.SKILLS,
    "capabilities": ProfileField.SKILLS,
    "proficiencies": ProfileField.SKILLS,
    "areas of expertise": ProfileField.SKILLS,
    "expertise": ProfileField.SKILLS,
    "skill set": ProfileField.SKILLS,
    "skillset": ProfileField.SKILLS,
    "linguistic skills": ProfileField.LANGUAGES,
    "language proficiency": ProfileField.LANGUAGES,
    "academic history": ProfileField.EDUCATION,
    "academic qualifications": ProfileField.EDUCATION,
    "educational background": ProfileField.EDUCATION,
    "studies": ProfileField.EDUCATION,
    "schooling": ProfileField.EDUCATION,
    "professional experience": ProfileField.WORK_EXPERIENCE,
    "professional background": ProfileField.WORK_EXPERIENCE,
    "career history": ProfileField.WORK_EXPERIENCE,
    "career": ProfileField.WORK_EXPERIENCE,
    "positions held": ProfileField.WORK_EXPERIENCE,
    "relevant experience": ProfileField.WORK_EXPERIENCE,
    "community service": ProfileField.VOLUNTEER,
    "community involvement": ProfileField.VOLUNTEER,
    "volunteering activities": ProfileField.VOLUNTEER,
    "army service": ProfileField.MILITARY,
    "military background": ProfileField.MILITARY,
    "national service": ProfileField.MILITARY,
    "training programs": ProfileField.COURSES,
    "training programmes": ProfileField.COURSES,
    "professional development": ProfileField.COURSES,
    "licenses & certifications": ProfileField.COURSES,
    "licenses and certifications": ProfileField.COURSES,
    "bootcamps": ProfileField.COURSES,
    "portfolio": ProfileField.PROJECTS,
    "side projects": ProfileField.PROJECTS,
    "selected projects": ProfileField.PROJECTS,
    "open source": ProfileField.PROJECTS,
    "notable work": ProfileField.PROJECTS,
}

# Headings that close a section without opening a bucket
STOP_KEYWORDS = [
    "summary",
    "professional summary",
    "profile",
    "about",
    "about me",
    "objective",
    "career objective",
    "contact",
    "contact information",
    "contact details",
    "personal details",
    "personal information",
    "references",
    "hobbies",
    "interests",
    "awards",
    "achievements",
    "publications",
]

# Headings are short; anything at or above this length is content
MAX_HEADING_LENGTH = 50

# What may follow a keyword in a longer heading ("Education and Certifications",
# "Technical Skills & Tools", "WORK EXPERIENCE (2015-2023)")
HEADING_CONNECTOR_PATTERN = r"^\s*(?:&|\+|/|\(|-|–|and\b)"

# Lowercase words allowed inside a title-cased heading
HEADING_MINOR_WORDS = frozenset({"and", "of", "the", "for"})

# Separators for list-style buckets (skills, languages)
LIST_SEPARATOR_PATTERN = r"\s*[,;|•·]\s*"

BULLET_PREFIX_PATTERN = r"^\s*(?:[•\-\*·▪●◦–>]|\d{1,2}[.)])\s+"

# Line-level fallback detectors, evaluated in this order
COURSE_PATTERN = r"\b(?:training|bootcamp|certification|certificate|program|programme|course|workshop)s?\b"
PROJECT_PATTERN = (
    r"\b(?:developing|developed|building|built|microservices?|implemented|implementing"
    r"|open[- ]source|side project)\b"
)
MILITARY_PATTERN = r"\b(?:idf|army|combat|military\s+service)\b"

# Document-wide fallback detectors
EDUCATION_PATTERN = (
    r"\b(?:bachelor|master'?s?|b\.?sc|m\.?sc|b\.?a|m\.?a|mba|ph\.?d|doctorate|degree|diploma"
    r"|university|college|institute|academy|school)\b"
)
JOB_TITLE_PATTERN = (
    r"\b(?:developer|engineer|manager|director|analyst|specialist|coordinator|consultant"
    r"|architect|designer|intern|administrator|representative|officer|technician|scientist"
    r"|instructor|trainer|team lead|tech lead|head of)\b"
)
YEAR_RANGE_PATTERN = r"\b(?:19|20)\d{2}\s*[-–—]\s*(?:(?:19|20)\d{2}|present|current|now)\b"

LAST_RESORT_MIN_CHUNK = 20
LAST_RESORT_MAX_CHUNKS = 10
LAST_RESORT_TRUNCATE = 500

# Lowercase token -> canonical spelling
TECH_TOKENS = {
    "javascript": "JavaScript",
    "typescript": "TypeScript",
    "python": "Python",
    "java": "Java",
    "c++": "C++",
    "c#": "C#",
    "golang": "Go",
    "rust": "Rust",
    "ruby": "Ruby",
    "php": "PHP",
    "kotlin": "Kotlin",
    "swift": "Swift",
    "react": "React",
    "angular": "Angular",
    "vue": "Vue",
    "node.js": "Node.js",
    "nodejs": "Node.js",
    "express": "Express",
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
    "spring": "Spring",
    "laravel": "Laravel",
    "rails": "Rails",
    "html": "HTML",
    "css": "CSS",
    "sql": "SQL",
    "postgresql": "PostgreSQL",
    "mysql": "MySQL",
    "mongodb": "MongoDB",
    "redis": "Redis",
    "elasticsearch": "Elasticsearch",
    "docker": "Docker",
    "kubernetes": "Kubernetes",
    "terraform": "Terraform",
    "aws": "AWS",
    "azure": "Azure",
    "gcp": "GCP",
    "git": "Git",
    "linux": "Linux",
    "graphql": "GraphQL",
    "rest api": "REST API",
    "machine learning": "Machine Learning",
    "tensorflow": "TensorFlow",
    "pytorch": "PyTorch",
}

# Lowercase spoken language -> canonical spelling
SPOKEN_LANGUAGES = {
    "english": "English",
    "hebrew": "Hebrew",
    "arabic": "Arabic",
    "russian": "Russian",
    "french": "French",
    "spanish": "Spanish",
    "german": "German",
    "italian": "Italian",
    "portuguese": "Portuguese",
    "chinese": "Chinese",
    "mandarin": "Mandarin",
    "japanese": "Japanese",
    "korean": "Korean",
    "hindi": "Hindi",
    "amharic": "Amharic",
    "turkish": "Turkish",
    "polish": "Polish",
    "dutch": "Dutch",
    "ukrainian": "Ukrainian",
    "romanian": "Romanian",
}

# Allow-list for the single-capitalised-word and place heuristics of the PII filter
JOB_TITLE_TERMS = [
    "developer", "engineer", "manager", "director", "analyst", "specialist",
    "coordinator", "instructor", "trainer", "consultant", "architect", "designer",
    "experience", "education", "skills", "projects", "volunteer", "military",
    "lead", "senior", "junior", "assistant", "executive", "officer", "master",
    "intern", "founder", "owner", "administrator", "representative", "teacher",
]

INSTITUTION_TERMS = [
    "university", "college", "institute", "school", "academy", "project",
    "program", "course", "training", "certification", "degree", "bachelor",
    "science", "engineering", "technology", "bootcamp",
]

PROFESSIONAL_TERMS = [
    "leadership", "communication", "teamwork", "management", "marketing",
    "sales", "design", "testing", "agile", "scrum", "mentoring", "research",
    "analytics", "security", "networking", "debugging", "frontend", "backend",
    "fullstack", "devops", "microservices",
]

# All-caps lines made only of these are kept
TECH_ACRONYMS = [
    "aws", "api", "sql", "html", "css", "gcp", "ide", "sdk", "cli", "sso", "iam",
    "cdn", "dns", "ssl", "tls", "http", "https", "json", "xml", "rest", "soap",
    "grpc", "jwt", "oauth", "cors", "csp", "xss", "csrf", "php", "qa", "ui", "ux",
]
