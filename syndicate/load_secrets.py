import os
from dotenv import load_dotenv

load_dotenv()

user = os.getenv("DB_USER")
password = os.getenv("DB_PASSWORD")
host = os.getenv("DB_HOST")
port = os.getenv("DB_PORT")
db_name = os.getenv("DB_NAME")
database_url = os.getenv("DATABASE_URL")
pepper_data = os.getenv("PEPPER_DATA", "")
game_config_dir = os.getenv("GAME_CONFIG_DIR", "config")

if __name__ == "__main__":
    print(user, host, port, db_name, database_url, game_config_dir)
