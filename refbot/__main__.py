from refbot.bot import main

main()
