# Bilingual Story Generator
