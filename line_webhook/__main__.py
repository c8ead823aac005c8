from line_webhook.serve import main

main()
