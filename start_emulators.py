#!/usr/bin/env python3
"""
Start the Firebase Auth and Firestore emulators for integration testing.
Ports come from firebase.json; run the integration tests with
`pytest tests/integration -m integration` once the emulators are up.
"""
import json
import os
import socket
import subprocess
import sys

ROOT = os.path.dirname(os.path.abspath(__file__))


def check_port(host, port):
    """Check if a port is already in use."""
    try:
        with socket.create_connection((host, port), timeout=1):
            return True
    except OSError:
        return False


def emulator_ports():
    with open(os.path.join(ROOT, "firebase.json")) as f:
        config = json.load(f)["emulators"]
    return {name: entry["port"] for name, entry in config.items() if "port" in entry}


def check_firebase_cli():
    """Check if Firebase CLI is installed."""
    try:
        result = subprocess.run(["firebase", "--version"], capture_output=True, text=True, timeout=5)
    except (subprocess.TimeoutExpired, FileNotFoundError):
        return False
    if result.returncode != 0:
        return False
    print(f"✓ Firebase CLI installed: {result.stdout.strip()}")
    return True


def start_emulators():
    """Start the emulators in the foreground until Ctrl+C."""
    busy = [f"{name} (port {port})" for name, port in emulator_ports().items() if check_port("localhost", port)]
    if busy:
        print("\n⚠ Emulator ports already in use:")
        for entry in busy:
            print(f"  - {entry}")
        print("Stop the running emulators first.")
        return False

    print("\nStarting emulators (auth, firestore)... Press Ctrl+C to stop")
    print(f"  export FIRESTORE_EMULATOR_HOST=localhost:{emulator_ports()['firestore']}")
    print(f"  export FIREBASE_AUTH_EMULATOR_HOST=localhost:{emulator_ports()['auth']}")
    print("=" * 80 + "\n")

    try:
        subprocess.run(["firebase", "emulators:start", "--only", "auth,firestore"], cwd=ROOT)
    except KeyboardInterrupt:
        print("\nEmulators stopped.")
    return True


def main():
    print("=" * 80)
    print("Firebase Emulator Starter for identity-sync")
    print("=" * 80)

    if not check_firebase_cli():
        print("Firebase CLI not found. Install it with: npm install -g firebase-tools")
        sys.exit(1)

    sys.exit(0 if start_emulators() else 1)


if __name__ == "__main__":
    main()
