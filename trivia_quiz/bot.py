import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import discord
from discord import app_commands
from discord.ext import commands

from .config_manager import ConfigManager
from .models import Answer, Difficulty, Question, ScoreEntry, SummaryRow
from .question_bank import DEFAULT_QUIZ_SET
from .quiz_controller import THEMES, QuizController

logger = logging.getLogger(__name__)

ANSWER_LABELS = "ABCDEFGH"
EXPORT_FILENAME = "quiz_sets.json"
COLOR_QUESTION = 0x3498db
COLOR_CORRECT = 0x2ecc71
COLOR_WRONG = 0xe74c3c
COLOR_INFO = 0x95a5a6


def progress_bar(fraction: float, width: int = 10) -> str:
    filled = round(max(0.0, min(1.0, fraction)) * width)
    return "█" * filled + "░" * (width - filled)


def format_entries(entries: List[ScoreEntry], with_filters: bool = False) -> str:
    if not entries:
        return "No runs recorded yet."
    lines = []
    for rank, entry in enumerate(entries, start=1):
        line = f"**{rank}.** {entry.player_name}: {entry.score}/{entry.total} ({entry.percent}%)"
        if with_filters:
            line += f" · {entry.category}/{entry.difficulty}"
        lines.append(line)
    return "\n".join(lines)


class QuizBot(commands.Bot):
    """Discord front end for a single-player trivia quiz"""

    def __init__(self, config=None):
        intents = discord.Intents.none()
        intents.guilds = True  # Required for slash commands

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}
        self.config_manager: Optional[ConfigManager] = None
        self.quiz_controller: Optional[QuizController] = None
        self._channel: Optional[discord.abc.Messageable] = None
        self._run_started = False
        self._announcements: Set[asyncio.Task] = set()

    async def setup_hook(self):
        """Called when the bot is starting up"""
        logger.info("Setting up bot components...")

        self.config_manager = ConfigManager()
        rejected = self.config_manager.apply_config(self.app_config)
        for message in rejected:
            logger.warning(f"Configuration: {message}")

        self.quiz_controller = QuizController(self.config_manager)
        self.quiz_controller.engine.add_resolved_listener(self.on_question_resolved)
        self.quiz_controller.engine.add_finished_listener(self.on_run_finished)

        self.setup_commands()
        logger.info("Bot setup completed successfully")

    def setup_commands(self):
        """Register all slash commands"""

        @self.tree.command(name="help", description="Display available commands")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="categories", description="List question categories")
        async def categories_command(interaction: discord.Interaction):
            await self.handle_categories(interaction)

        @self.tree.command(name="category", description="Choose a category (or 'any') and start a new run")
        async def category_command(interaction: discord.Interaction, name: str):
            await self.handle_category(interaction, name)

        @self.tree.command(name="difficulty", description="Choose Easy, Medium, Hard or any and start a new run")
        async def difficulty_command(interaction: discord.Interaction, level: str):
            await self.handle_difficulty(interaction, level)

        @self.tree.command(name="play", description="Show the current question")
        async def play_command(interaction: discord.Interaction):
            await self.handle_play(interaction)

        @self.tree.command(name="answer", description="Answer the current question by letter")
        async def answer_command(interaction: discord.Interaction, letter: str):
            await self.handle_answer(interaction, letter)

        @self.tree.command(name="next", description="Go to the next question")
        async def next_command(interaction: discord.Interaction):
            await self.handle_next(interaction)

        @self.tree.command(name="restart", description="Reshuffle and restart the current run")
        async def restart_command(interaction: discord.Interaction):
            await self.handle_restart(interaction)

        @self.tree.command(name="name", description="Set your player name")
        async def name_command(interaction: discord.Interaction, name: str):
            await self.handle_name(interaction, name)

        @self.tree.command(name="theme", description="Set the display theme")
        @app_commands.choices(theme=[app_commands.Choice(name=t, value=t) for t in THEMES])
        async def theme_command(interaction: discord.Interaction, theme: app_commands.Choice[str]):
            await self.handle_theme(interaction, theme.value)

        @self.tree.command(name="add_question", description="Add a question; answers separated by '|', first one correct")
        async def add_question_command(
            interaction: discord.Interaction,
            text: str,
            category: str,
            difficulty: str,
            answers: str,
            quiz_set: str = DEFAULT_QUIZ_SET
        ):
            await self.handle_add_question(interaction, text, category, difficulty, answers, quiz_set)

        @self.tree.command(name="delete_set", description="Delete a quiz set")
        async def delete_set_command(interaction: discord.Interaction, name: str):
            await self.handle_delete_set(interaction, name)

        @self.tree.command(name="export", description="Download all quiz sets as JSON")
        async def export_command(interaction: discord.Interaction):
            await self.handle_export(interaction)

        @self.tree.command(name="import", description="Replace all quiz sets with an uploaded JSON file")
        async def import_command(interaction: discord.Interaction, file: discord.Attachment):
            await self.handle_import(interaction, file)

        @self.tree.command(name="highscores", description="Show highscores for the current filters")
        async def highscores_command(interaction: discord.Interaction):
            await self.handle_highscores(interaction)

        @self.tree.command(name="history", description="Show recent runs")
        async def history_command(interaction: discord.Interaction):
            await self.handle_history(interaction)

        @self.tree.command(name="status", description="Show progress, score and time left")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f'{self.user} has connected to Discord!')
        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} command(s)")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync commands: {e}")

    async def close(self):
        if self.quiz_controller:
            self.quiz_controller.shutdown()
        await super().close()

    # Engine events

    def on_question_resolved(self, row: SummaryRow):
        if row.timed_out and self._channel is not None:
            self._schedule(self._announce_timeout(row))

    def on_run_finished(self, engine):
        if self._channel is not None:
            self._schedule(self._announce_finish())

    def _schedule(self, coro) -> asyncio.Task:
        # The loop keeps only weak references to tasks
        task = asyncio.create_task(coro)
        self._announcements.add(task)
        task.add_done_callback(self._announcements.discard)
        return task

    async def _announce_timeout(self, row: SummaryRow):
        embed = discord.Embed(
            title="⏰ Time's up!",
            description=f"The answer was **{row.answers[row.correct_index]}**",
            color=COLOR_WRONG
        )
        if not self.quiz_controller.engine.is_finished:
            embed.set_footer(text="Use /next to continue")
        await self._send(embed)

    async def _announce_finish(self):
        view = self.quiz_controller.get_view()
        entry = self.quiz_controller.last_entry
        embed = discord.Embed(title="🏁 Quiz finished!", color=COLOR_CORRECT)
        if entry is not None:
            embed.description = f"{entry.player_name} scored **{entry.score}/{entry.total}** ({entry.percent}%)"
        embed.add_field(name="Summary", value=self.format_summary(view['summary']), inline=False)
        embed.set_footer(text="Use /restart to play again or /highscores to see the rankings")
        await self._send(embed)

    async def _send(self, embed: discord.Embed):
        try:
            await self._channel.send(embed=embed)
        except discord.HTTPException as e:
            logger.error(f"Failed to send message: {e}")

    # Rendering

    def build_question_embed(self, view: Dict[str, Any]) -> discord.Embed:
        question = view['question']
        if question is None:
            return discord.Embed(
                title="Nothing to play",
                description=f"No questions match {view['category']}/{view['difficulty']}.",
                color=COLOR_INFO
            )

        embed = discord.Embed(
            title=f"❓ Question {view['question_number']}/{view['total_questions']}",
            description=question.text,
            color=COLOR_QUESTION
        )
        for i, answer in enumerate(question.answers):
            label = ANSWER_LABELS[i] if i < len(ANSWER_LABELS) else str(i + 1)
            embed.add_field(name=label, value=answer.text, inline=False)
        if question.image:
            embed.set_image(url=question.image)

        embed.add_field(name="Progress", value=progress_bar(view['progress']), inline=True)
        embed.add_field(name="Time", value=f"{progress_bar(view['time_fraction'])} {view['time_remaining']:.0f}s", inline=True)
        embed.add_field(name="Score", value=str(view['score']), inline=True)
        embed.set_footer(text=f"{question.category} · {question.difficulty.value} · answer with /answer")
        return embed

    def format_summary(self, summary) -> str:
        if not summary:
            return "No questions played."
        lines = []
        for i, row in enumerate(summary, start=1):
            if row.timed_out:
                mark = "⏰"
            else:
                mark = "✅" if row.was_correct else "❌"
            lines.append(f"{mark} {i}. {row.question_text} → {row.answers[row.correct_index]}")
        return "\n".join(lines)[:1024]

    # Command handlers

    async def handle_help(self, interaction: discord.Interaction):
        embed = discord.Embed(title="🧠 Trivia Quiz", color=COLOR_INFO)
        embed.add_field(name="Playing", value=(
            "/play · show the current question\n"
            "/answer · answer by letter\n"
            "/next · next question\n"
            "/restart · reshuffle and start over"
        ), inline=False)
        embed.add_field(name="Filters", value="/categories · /category · /difficulty", inline=False)
        embed.add_field(name="Scores", value="/highscores · /history · /status", inline=False)
        embed.add_field(name="Settings", value="/name · /theme · /add_question · /delete_set · /import · /export", inline=False)
        await interaction.response.send_message(embed=embed)

    async def handle_categories(self, interaction: discord.Interaction):
        categories = self.quiz_controller.categories()
        description = "\n".join(f"• {c}" for c in categories) if categories else "The question bank is empty."
        embed = discord.Embed(title="📚 Categories", description=description, color=COLOR_INFO)
        await interaction.response.send_message(embed=embed)

    async def handle_category(self, interaction: discord.Interaction, name: str):
        await self._respond_with_run(interaction, self.quiz_controller.select_category(name))

    async def handle_difficulty(self, interaction: discord.Interaction, level: str):
        await self._respond_with_run(interaction, self.quiz_controller.select_difficulty(level))

    async def handle_restart(self, interaction: discord.Interaction):
        await self._respond_with_run(interaction, self.quiz_controller.restart())

    async def _respond_with_run(self, interaction: discord.Interaction, result: Dict[str, Any]):
        self._channel = interaction.channel
        if not result["success"]:
            await self.send_error_response(interaction, result["user_message"])
            return
        self._run_started = True
        embed = self.build_question_embed(result['view'])
        await interaction.response.send_message(content=result['user_message'], embed=embed)

    async def handle_play(self, interaction: discord.Interaction):
        if not self._run_started:
            await self._respond_with_run(interaction, self.quiz_controller.start_quiz())
            return
        self._channel = interaction.channel
        embed = self.build_question_embed(self.quiz_controller.get_view())
        await interaction.response.send_message(embed=embed)

    async def handle_answer(self, interaction: discord.Interaction, letter: str):
        self._channel = interaction.channel
        letter = letter.strip().upper()
        if len(letter) != 1 or letter not in ANSWER_LABELS:
            await self.send_error_response(interaction, "Answer with a letter, for example A or B")
            return

        result = self.quiz_controller.select_answer(ANSWER_LABELS.index(letter))
        if not result['success']:
            await self.send_error_response(interaction, result['user_message'])
            return
        if not result['accepted']:
            await self.send_info_response(interaction, result['user_message'])
            return

        embed = discord.Embed(
            title=result['user_message'],
            color=COLOR_CORRECT if result['correct'] else COLOR_WRONG
        )
        if not result['finished']:
            embed.set_footer(text="Use /next to continue")
        await interaction.response.send_message(embed=embed)

    async def handle_next(self, interaction: discord.Interaction):
        self._channel = interaction.channel
        result = self.quiz_controller.advance()
        if not result['success']:
            await self.send_info_response(interaction, result['user_message'])
            return
        await interaction.response.send_message(embed=self.build_question_embed(result['view']))

    async def handle_name(self, interaction: discord.Interaction, name: str):
        result = self.quiz_controller.set_player_name(name)
        await self._respond_with_message(interaction, result)

    async def handle_theme(self, interaction: discord.Interaction, theme: str):
        result = self.quiz_controller.set_theme(theme)
        await self._respond_with_message(interaction, result)

    async def handle_add_question(
        self,
        interaction: discord.Interaction,
        text: str,
        category: str,
        difficulty: str,
        answers: str,
        quiz_set: str
    ):
        try:
            level = Difficulty.parse(difficulty)
        except ValueError:
            await self.send_error_response(interaction, "Difficulty must be Easy, Medium or Hard")
            return

        options = [option.strip() for option in answers.split("|")]
        question_answers = [Answer(option, is_correct=(i == 0)) for i, option in enumerate(options)]
        question = Question(text=text.strip(), category=category.strip(), difficulty=level, answers=question_answers)

        result = self.quiz_controller.create_question(question, quiz_set)
        await self._respond_with_message(interaction, result)

    async def handle_delete_set(self, interaction: discord.Interaction, name: str):
        result = self.quiz_controller.delete_quiz_set(name)
        await self._respond_with_message(interaction, result)

    async def handle_export(self, interaction: discord.Interaction):
        with tempfile.TemporaryDirectory() as temp_dir:
            result = self.quiz_controller.export_quiz_sets(str(Path(temp_dir) / EXPORT_FILENAME))
            if not result['success']:
                await self.send_error_response(interaction, result['user_message'])
                return
            await interaction.response.send_message(
                content=result['user_message'],
                file=discord.File(result['path'], filename=EXPORT_FILENAME),
                ephemeral=True
            )

    async def handle_import(self, interaction: discord.Interaction, attachment: discord.Attachment):
        self._channel = interaction.channel
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "import.json"
            try:
                await attachment.save(path)
            except discord.HTTPException as e:
                logger.error(f"Failed to download import file: {e}")
                await self.send_error_response(interaction, "Could not download the attached file")
                return
            result = self.quiz_controller.import_quiz_sets(str(path))

        if result['success']:
            self._run_started = True
        await self._respond_with_message(interaction, result)

    async def _respond_with_message(self, interaction: discord.Interaction, result: Dict[str, Any]):
        if result['success']:
            await self.send_info_response(interaction, result['user_message'])
        else:
            await self.send_error_response(interaction, result['user_message'])

    async def handle_highscores(self, interaction: discord.Interaction):
        engine = self.quiz_controller.engine
        entries = self.quiz_controller.top_scores()
        embed = discord.Embed(
            title=f"🏆 Highscores · {engine.category}/{engine.difficulty}",
            description=format_entries(entries),
            color=COLOR_INFO
        )
        await interaction.response.send_message(embed=embed)

    async def handle_history(self, interaction: discord.Interaction):
        embed = discord.Embed(
            title="🕘 Recent runs",
            description=format_entries(self.quiz_controller.recent_history(), with_filters=True),
            color=COLOR_INFO
        )
        await interaction.response.send_message(embed=embed)

    async def handle_status(self, interaction: discord.Interaction):
        view = self.quiz_controller.get_view()
        embed = discord.Embed(title="📊 Quiz Status", color=COLOR_INFO)
        embed.add_field(name="Player", value=view['player_name'], inline=True)
        embed.add_field(name="Filters", value=f"{view['category']}/{view['difficulty']}", inline=True)
        embed.add_field(name="State", value=view['state'], inline=True)
        embed.add_field(
            name="Progress",
            value=f"{progress_bar(view['progress'])} {len(view['summary'])}/{view['total_questions']}",
            inline=False
        )
        embed.add_field(name="Score", value=str(view['score']), inline=True)
        embed.add_field(name="Time left", value=f"{view['time_remaining']:.0f}s", inline=True)
        await interaction.response.send_message(embed=embed)

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        embed = discord.Embed(title=title, description=message, color=COLOR_WRONG)
        await interaction.response.send_message(embed=embed, ephemeral=True)

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        embed = discord.Embed(title=title, description=message, color=COLOR_INFO)
        await interaction.response.send_message(embed=embed, ephemeral=True)


async def run_bot(token: str, config=None):
    """Run the Discord bot until it disconnects."""
    bot = QuizBot(config)
    async with bot:
        await bot.start(token)
