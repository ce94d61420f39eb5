#!/usr/bin/env python3
"""
Startup script for the Housing Subscription Matching Service
"""
import subprocess
import sys
from pathlib import Path


def create_env_file():
    """Create .env file if it doesn't exist"""
    env_path = Path(".env")
    if not env_path.exists():
        print("📝 Creating .env file...")

        env_content = """# MongoDB Configuration
MONGODB_URL=mongodb://localhost:27017
MONGODB_DB_NAME=cheongyak_db

# OpenRouter API Configuration
OPENROUTER_API_KEY=your_openrouter_api_key_here
OPENROUTER_BASE_URL=https://openrouter.ai/api/v1
OPENROUTER_MODEL=google/gemini-2.0-flash-001

# Application Configuration
APP_NAME=Housing Subscription Matching Service
DEBUG=true
LOG_LEVEL=INFO

# Upload Configuration
UPLOAD_DIRECTORY=uploads
MAX_FILE_SIZE=10485760
ALLOWED_CONTENT_TYPES=application/pdf,image/jpeg,image/png

# Analysis Pipeline
CACHE_BACKEND=mongo
CACHE_TTL_DAYS=30
ANALYSIS_WORKERS=16
BREAKER_FAILURE_THRESHOLD=5
BREAKER_RECOVERY_TIMEOUT=30
OCR_LANGUAGE=kor+eng

# API Configuration
API_PREFIX=/api/v1
CORS_ORIGINS=http://localhost:3000,http://localhost:8080
"""

        env_path.write_text(env_content, encoding="utf-8")

        print("✅ .env file created successfully!")
        print("⚠️  Please edit .env file and add your OpenRouter API key")
    else:
        print("✅ .env file already exists")


def check_dependencies():
    """Check if required dependencies are installed"""
    print("🔍 Checking dependencies...")

    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        import motor  # noqa: F401
        import fitz  # noqa: F401
        import httpx  # noqa: F401
        import pytesseract  # noqa: F401
        import pdf2image  # noqa: F401
        print("✅ All Python dependencies are installed")
    except ImportError as e:
        print(f"❌ Missing dependency: {e}")
        return False

    try:
        import pytesseract
        languages = pytesseract.get_languages(config="")
        if "kor" not in languages:
            print("⚠️  Tesseract Korean language data (kor) is not installed; OCR quality will be poor")
    except Exception as e:
        print(f"⚠️  Tesseract binary not found ({e}); scanned documents will fail OCR")

    return True


def start_mongodb():
    """Start MongoDB in a Docker container"""
    print("🐳 Starting MongoDB...")

    try:
        result = subprocess.run(['docker', '--version'], capture_output=True, text=True)
        if result.returncode != 0:
            print("❌ Docker is not running. Please start Docker first.")
            return False

        result = subprocess.run(
            ['docker', 'run', '-d', '--name', 'cheongyak-mongo', '-p', '27017:27017', 'mongo:7'],
            capture_output=True,
            text=True
        )
        if result.returncode == 0 or "already in use" in result.stderr:
            subprocess.run(['docker', 'start', 'cheongyak-mongo'], capture_output=True, text=True)
            print("✅ MongoDB started successfully")
            return True

        print(f"❌ Failed to start MongoDB: {result.stderr}")
        return False

    except FileNotFoundError:
        print("❌ Docker not found. Please install Docker or point MONGODB_URL at a running server.")
        return False


def run_tests():
    """Run the test suite"""
    print("🧪 Running tests...")

    try:
        result = subprocess.run([sys.executable, '-m', 'pytest', '-q'], capture_output=True, text=True)
        if result.returncode == 0:
            print("✅ Tests passed successfully")
            return True
        print(f"❌ Tests failed:\n{result.stdout[-2000:]}")
        return False
    except Exception as e:
        print(f"❌ Failed to run tests: {e}")
        return False


def start_application():
    """Start the FastAPI application"""
    print("🚀 Starting the application...")

    try:
        subprocess.run([
            sys.executable, '-m', 'uvicorn',
            'cheongyak.main:app',
            '--host', '0.0.0.0',
            '--port', '8000',
            '--reload'
        ])
    except KeyboardInterrupt:
        print("\n👋 Application stopped by user")
    except Exception as e:
        print(f"❌ Failed to start application: {e}")


def main():
    """Main startup function"""
    print("🏠 Housing Subscription Matching Service")
    print("=" * 50)

    if not Path("cheongyak").exists():
        print("❌ Please run this script from the project root directory")
        sys.exit(1)

    create_env_file()

    if not check_dependencies():
        print("\n📦 Please install dependencies first:")
        print("   pip install -e '.[test]'")
        sys.exit(1)

    if not start_mongodb():
        print("\n⚠️  MongoDB startup failed. You can still run the application")
        print("   if MongoDB is running elsewhere.")

    if not run_tests():
        print("\n⚠️  Some tests failed. The application may not work correctly.")

    print("\n🎯 System is ready!")
    print("\n📚 Next steps:")
    print("1. Edit .env file and add your OpenRouter API key")
    print("2. Visit http://localhost:8000/docs for API documentation")
    print("3. Save a profile with PUT /api/v1/profiles/{user_id}")
    print("4. Upload an announcement with POST /api/v1/documents and poll its status")

    response = input("\n🚀 Start the application now? (y/n): ").lower().strip()
    if response in ['y', 'yes']:
        start_application()
    else:
        print("\n💡 To start the application later, run:")
        print("   uvicorn cheongyak.main:app --reload")


if __name__ == "__main__":
    main()
