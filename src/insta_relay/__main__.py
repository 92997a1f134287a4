from insta_relay.clients import bot

if __name__ == "__main__":
    bot.run()
