import os


DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://localhost:5432/study_search")

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")  # mini for cost efficiency
OPENAI_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
OPENAI_MAX_TOKENS = int(os.getenv("OPENAI_MAX_TOKENS", "1000"))

# Cap on resources returned per search
MAX_RESULTS = int(os.getenv("MAX_RESULTS", "15"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
