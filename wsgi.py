# wsgi.py
import os

from dotenv import load_dotenv
load_dotenv()

# Set environment variables if not set
if not os.getenv('FLASK_APP'):
    os.environ['FLASK_APP'] = 'ifimgone'
if not os.getenv('FLASK_CONFIG'):
    os.environ['FLASK_CONFIG'] = 'production'

from ifimgone import create_app

application = create_app()
app = application

if __name__ == "__main__":
    app.run(debug=False, host='0.0.0.0', port=5000)
