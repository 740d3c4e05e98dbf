"""Minimal terminal demonstration of the chat widget.

Configure the service location and identity via environment/.env/config.yaml
(SCRIPT_SRC, PAGE_URL, IDENTITY) or pass them on the command line.
"""

import sys

from responsio import activate
from responsio.dom import Event


def render(client) -> None:
    for node in client.controller.messages():
        if "pws-cb-user" in node.class_list:
            print("You:", node.text_content)
        elif "pws-cb-bot-pending" in node.class_list:
            print("Bot: ...")
        else:
            print("Bot:", node.text_content)


if __name__ == "__main__":
    identity = sys.argv[1] if len(sys.argv) > 1 else None
    page_url = sys.argv[2] if len(sys.argv) > 2 else None
    client = activate(identity=identity, page_url=page_url)
    if client is None:
        sys.exit("No identity configured")
    controller = client.controller
    client.wait()
    render(client)
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        if line.strip() == "/reset":
            client.commands.reset()
            continue
        controller.input.value = line
        controller.input.dispatch_event(Event("keyup", key="Enter"))
        client.wait()
        render(client)
