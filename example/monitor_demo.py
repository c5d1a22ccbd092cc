from afbclient import Afb

def main():
    # Talks to a binder started with e.g. `afb-binder --port 1234 --ws-server ...`
    client = Afb("api", host="localhost", port=1234, token="HELLO")

    # Calls issued before the handshake completes are held until it does
    try:
        print("APIs:", client.list_apis().result(timeout=5))
        for api in client.discover_apis().result(timeout=5):
            print(f"{api.api} {api.version}: {api.title}")
            for verb in api.verbs:
                print(f"  {verb.verb}  {verb.description}")
    except Exception as e:
        print("Discovery failed (is a binder running?):", e)

    reply = client.invoke("hello/ping", '{"count": 1}', timeout=5).result()
    print("ping ->", reply.status, reply.response)

    # Events: first element of the hello/tick stream, if any arrives
    with client.subscribe("hello/tick") as ticks:
        client.invoke("hello/subscribe", {"event": "tick"}).result(timeout=5)
        print("tick:", ticks.get(timeout=2))

    client.close()

if __name__ == "__main__":
    main()
