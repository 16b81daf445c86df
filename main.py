from dotenv import load_dotenv

# Load environment before the app reads its configuration
load_dotenv()

from app import create_app  # noqa: E402

app = create_app()

if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
