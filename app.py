"""Main entry point for the application."""

from matchboard import create_app

app = create_app()


@app.route("/health")
def health_check():
    """Perform a simple health check."""
    return "OK", 200


if __name__ == "__main__":
    # The reloader would start a second polling thread.
    app.run(debug=True, host="0.0.0.0", port=27272, use_reloader=False)  # nosec
