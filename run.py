# /run.py

import subprocess
import threading
import time
import webbrowser
import os
import sys

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

API_PORT = int(os.getenv("API_PORT", "8000"))
DASHBOARD_PORT = int(os.getenv("DASHBOARD_PORT", "5000"))


def api_command(reload: bool = True):
  cmd = [sys.executable, "-m", "uvicorn", "catalog.main:app", "--host", "0.0.0.0", "--port", str(API_PORT)]
  if reload:
    cmd.append("--reload")
  return cmd

def dashboard_command():
  return [
    sys.executable, "-m", "streamlit", "run", os.path.join("catalog", "dashboard.py"),
    "--server.port", str(DASHBOARD_PORT), "--server.address", "0.0.0.0",
  ]

def dashboard_env():
  """The dashboard talks to the API started next to it unless CATALOG_API_URL is already set."""
  env = dict(os.environ)
  env.setdefault("CATALOG_API_URL", f"http://127.0.0.1:{API_PORT}")
  return env

def run_api(reload: bool):
  subprocess.run(api_command(reload), cwd=BASE_DIR)

def run_dashboard():
  # API needs a moment to create tables and start the scheduler
  time.sleep(2)
  subprocess.run(dashboard_command(), cwd=BASE_DIR, env=dashboard_env())

def open_browser():
  time.sleep(3)
  webbrowser.open(f"http://localhost:{DASHBOARD_PORT}")

if __name__ == "__main__":

  api = threading.Thread(target=run_api, args=("--no-reload" not in sys.argv,))
  threads = [api]
  if "--api-only" not in sys.argv:
    threads.append(threading.Thread(target=run_dashboard))

  for t in threads:
    t.start()

  if "--open" in sys.argv and len(threads) > 1:
    open_browser()

  for t in threads:
    t.join()
