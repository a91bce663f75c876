"""
Outreach Desk - Web Server Entry Point
======================================

Run this to start the web dashboard:
    python main.py

Then open http://127.0.0.1:8000 in your browser.

To sync and send from the console instead:
    python run_campaign.py
"""

import logging

import uvicorn


def main():
    """Start the web server."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    print("\n" + "=" * 50)
    print("   Outreach Desk - Web Dashboard")
    print("=" * 50)
    print("\n   Starting server at http://127.0.0.1:8000")
    print("   Press Ctrl+C to stop\n")

    uvicorn.run(
        "outreach_desk.web.app:app",
        host="127.0.0.1",
        port=8000,
        reload=False,
        log_level="info"
    )


if __name__ == "__main__":
    main()
