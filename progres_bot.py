import asyncio
import logging
import sys

import nest_asyncio
from telegram import Update
from telegram.constants import ChatAction, ParseMode
from telegram.ext import Application, ContextTypes, MessageHandler, filters

import config
from commands import IncomingMessage, ProgresBot
from sheets import GspreadBackend, SheetCache, SheetStore, background_refresh

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
# httpx logs every getUpdates call at INFO
logging.getLogger("httpx").setLevel(logging.WARNING)

nest_asyncio.apply()


def build_store() -> SheetStore:
    if config.GOOGLE_SERVICE_ACCOUNT_JSON:
        backend = GspreadBackend(config.SHEET_ID, info=config.load_service_account_info(config.GOOGLE_SERVICE_ACCOUNT_JSON))
    else:
        backend = GspreadBackend(config.SHEET_ID, path=config.GOOGLE_CREDENTIALS_PATH)
    cache = SheetCache(expiry=config.CACHE_EXPIRY_SECONDS)
    return SheetStore(backend, cache, fetch_timeout=config.FETCH_TIMEOUT)


def build_progres_bot(store: SheetStore) -> ProgresBot:
    return ProgresBot(
        store,
        progres_sheet=config.PROGRES_SHEET,
        master_sheet=config.MASTER_SHEET,
        group_write_only=config.GROUP_WRITE_ONLY,
        read_timeout=config.READ_TIMEOUT,
        append_timeout=config.APPEND_TIMEOUT,
        auth_timeout=config.AUTH_TIMEOUT,
        package_priority=config.PACKAGE_PRIORITY_BY_CHANNEL,
    )


# ------------- HANDLERS -------------
async def handle_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    if message is None or not message.text or message.from_user is None:
        return
    progres_bot: ProgresBot = context.bot_data["progres_bot"]
    incoming = IncomingMessage(
        chat_id=message.chat_id,
        message_id=message.message_id,
        username=message.from_user.username or "",
        chat_type=message.chat.type,
        text=message.text,
    )
    if progres_bot.is_ignored(incoming):
        return
    await context.bot.send_chat_action(chat_id=message.chat_id, action=ChatAction.TYPING)
    reply = await progres_bot.handle(incoming)
    if reply is None:
        return
    await context.bot.send_message(
        chat_id=message.chat_id,
        text=reply.text,
        parse_mode=ParseMode.HTML,
        reply_to_message_id=reply.reply_to_message_id,
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logging.error(f"Update {update} caused error: {context.error}", exc_info=context.error)


def build_application(progres_bot: ProgresBot) -> Application:
    application = Application.builder().token(config.TELEGRAM_TOKEN).build()
    application.bot_data["progres_bot"] = progres_bot
    application.add_handler(MessageHandler(filters.TEXT & filters.Regex(r"^/"), handle_command))
    application.add_error_handler(error_handler)
    return application


# ----------------- MAIN ------------------
async def main() -> None:
    missing = config.validate()
    if missing:
        logging.error(f"Missing configuration: {', '.join(missing)}")
        sys.exit(1)

    store = build_store()
    application = build_application(build_progres_bot(store))

    refresh_task = asyncio.create_task(background_refresh(store, config.REFRESH_INTERVAL))
    logging.info("Bot Progres PSB started, polling for updates")
    application.run_polling(allowed_updates=["message"], close_loop=False)
    refresh_task.cancel()


if __name__ == '__main__':
    asyncio.run(main())
