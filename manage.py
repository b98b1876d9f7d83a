from app import create_app

# `flask --app manage db upgrade` and `flask --app manage seed-demo` use this instance
app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host='0.0.0.0', port=5000)
